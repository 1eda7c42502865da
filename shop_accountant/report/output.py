# shop_accountant/report/output.py
"""Deliver rendered PDFs: save to disk, or open for printing."""
from __future__ import annotations

import base64
import logging
import tempfile
import time
import webbrowser
from pathlib import Path
from typing import Callable, Optional, Union

from shop_accountant.config import PRINT_RENDER_DELAY_SECONDS, REPORTS_DIR
from shop_accountant.report.reports import RenderedPdf
from shop_accountant.utils.io_utils import atomic_write_bytes

logger = logging.getLogger(__name__)

MODE_DOWNLOAD = "download"
MODE_PRINT = "print"


def download(rendered: RenderedPdf, out_dir: Union[str, Path, None] = None) -> Path:
    """Write the PDF under `out_dir` (default REPORTS_DIR) using its own filename."""
    path = Path(out_dir or REPORTS_DIR) / rendered.filename
    atomic_write_bytes(path, rendered.data)
    logger.info("Saved %s", path)
    return path


def print_pdf(
    rendered: RenderedPdf,
    opener: Callable[[str], bool] = webbrowser.open,
    delay: float = PRINT_RENDER_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    tmp_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Write the PDF to a temporary file and open it in a new browser tab so
    the user can print it. Waits `delay` seconds first so the file is
    fully flushed before the viewer loads it.
    """
    directory = Path(tmp_dir) if tmp_dir else Path(tempfile.mkdtemp(prefix="shop-accountant-print-"))
    path = atomic_write_bytes(directory / rendered.filename, rendered.data)
    sleep(delay)
    if not opener(path.resolve().as_uri()):
        logger.warning("No browser available to print %s", path)
    return path


def deliver(rendered: RenderedPdf, mode: str = MODE_DOWNLOAD, out_dir: Union[str, Path, None] = None) -> Path:
    if mode == MODE_DOWNLOAD:
        return download(rendered, out_dir)
    if mode == MODE_PRINT:
        return print_pdf(rendered)
    raise ValueError(f"Unknown output mode: {mode!r}")


def print_page_html(rendered: RenderedPdf, delay: float = PRINT_RENDER_DELAY_SECONDS) -> str:
    """HTML snippet embedding the PDF and calling window.print() after `delay`."""
    payload = base64.b64encode(rendered.data).decode("ascii")
    return (
        f'<iframe id="pdf" src="data:application/pdf;base64,{payload}" '
        'style="width:100%;height:600px;border:none"></iframe>'
        "<script>setTimeout(function () {"
        "var f = document.getElementById('pdf');"
        "try { f.contentWindow.focus(); f.contentWindow.print(); } catch (e) { window.print(); }"
        f"}}, {int(delay * 1000)});</script>"
    )
