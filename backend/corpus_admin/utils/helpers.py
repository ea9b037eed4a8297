"""General helper utilities."""
import time
from pathlib import Path
from werkzeug.utils import secure_filename


def make_upload_path(original_name: str, now: float | None = None) -> str:
    """Return a sanitized object path prefixed with the epoch milliseconds.

    ``"My Gita.pdf"`` -> ``"1718000000000_My_Gita.pdf"``.
    """
    millis = int((time.time() if now is None else now) * 1000)
    safe = secure_filename(original_name) or "upload"
    return f"{millis}_{safe}"


def file_extension(filename: str) -> str:
    """Return lowercase extension without the dot."""
    return Path(filename).suffix.lstrip(".").lower()


ALLOWED_UPLOAD_EXTENSIONS = {"pdf"}


def is_allowed_file(filename: str) -> bool:
    return file_extension(filename) in ALLOWED_UPLOAD_EXTENSIONS
