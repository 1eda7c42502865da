# shop_accountant/api/client.py
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

import httpx

from shop_accountant.config import API_BASE_URL, NETWORK_ERROR_MESSAGE

logger = logging.getLogger(__name__)

ApiResponse = Dict[str, Any]

_FILENAME_RE = re.compile(r'filename="(.+)"')


def network_error() -> ApiResponse:
    return {"success": False, "message": NETWORK_ERROR_MESSAGE}


class ApiClient:
    """
    Thin JSON client over the shop backend.

    Every call returns the decoded JSON body (``{"success": bool, ...}``).
    Transport failures and undecodable bodies are converted into
    ``{"success": False, "message": NETWORK_ERROR_MESSAGE}``; nothing raises.
    """

    def __init__(self, base_url: str = API_BASE_URL, http: Optional[httpx.Client] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.Client()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> ApiResponse:
        try:
            response = self.http.request(
                method, self.url(path), params=params, json=json, files=files, headers=headers
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s %s failed: %s", method, path, e)
            return network_error()
        if not isinstance(data, dict):
            return {"success": response.is_success, "data": data}
        return data

    def get(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> ApiResponse:
        return self.request("DELETE", path, **kwargs)

    def download(self, path: str, default_filename: str) -> ApiResponse:
        """
        GET a file. Returns ``{"success", "filename", "content"}``; the filename
        comes from the Content-Disposition header when present.
        """
        try:
            response = self.http.get(self.url(path))
        except httpx.HTTPError as e:
            logger.warning("Download %s failed: %s", path, e)
            return network_error()
        if not response.is_success:
            try:
                message = response.json().get("message")
            except ValueError:
                message = None
            return {"success": False, "message": message or f"Download failed ({response.status_code})"}
        filename = default_filename
        match = _FILENAME_RE.search(response.headers.get("content-disposition", ""))
        if match:
            filename = match.group(1)
        return {"success": True, "filename": filename, "content": response.content}

    def get_full_image_url(self, path: Optional[str]) -> Optional[str]:
        """Turn a server-relative image path into an absolute URL."""
        if not path:
            return None
        if path.startswith("http"):
            return path
        server_base = self.base_url.replace("/api", "", 1)
        return f"{server_base}{path}"

    def fetch_bytes(self, url: Optional[str]) -> Optional[bytes]:
        """Fetch raw bytes (logos); None on any failure."""
        if not url:
            return None
        try:
            response = self.http.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Could not fetch %s: %s", url, e)
            return None
        return response.content

    def close(self) -> None:
        self.http.close()
