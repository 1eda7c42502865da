# shop_accountant/utils/io_utils.py
from pathlib import Path
import tempfile
import os
from typing import Union

PathLike = Union[str, Path]


def atomic_write_bytes(path: PathLike, data: bytes) -> Path:
    """
    Atomically write `data` to `path` and return the final path.

    Behavior:
      - Creates parent directories if needed.
      - Writes to a temporary file in the same directory, fsyncs it,
        then replaces the target with `os.replace`.
      - Removes the temporary file on failure.

    Raises:
        OSError (or subclass): Propagates I/O related errors.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            try:
                os.fsync(f.fileno())
            except (AttributeError, OSError):
                # fsync is unavailable on some platforms
                pass
        os.replace(tmp_path, str(p))
    except OSError:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass
        raise
    return p


def atomic_write_text(path: PathLike, text: str, encoding: str = "utf-8") -> Path:
    """Text variant of :func:`atomic_write_bytes`."""
    return atomic_write_bytes(path, text.encode(encoding))


def safe_filename_part(value: str) -> str:
    """Replace whitespace runs with '-' (used for app names in file names)."""
    return "-".join(str(value or "").split())
