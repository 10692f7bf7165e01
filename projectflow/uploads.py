"""
Submission file handling.
Converts an uploaded file into the {fileName, fileUrl} pair stored on a
submission. Files are embedded as base64 data URLs so they can be previewed
without separate file hosting.
"""
import base64
import mimetypes
from urllib.parse import urlparse

from werkzeug.utils import secure_filename

from .config import config


def encode_bytes(filename, data: bytes, mimetype=None, max_bytes=None) -> dict:
    """Build {fileName, fileUrl} from raw bytes."""
    limit = max_bytes if max_bytes is not None else config.max_upload_bytes
    if len(data) > limit:
        raise ValueError(f"File is too large ({len(data)} bytes, limit {limit})")

    safe_name = secure_filename(filename or "") or "upload"
    if not mimetype or mimetype == "application/octet-stream":
        mimetype = mimetypes.guess_type(safe_name)[0] or "application/octet-stream"

    encoded = base64.b64encode(data).decode("ascii")
    return {
        "fileName": safe_name,
        "fileUrl": f"data:{mimetype};base64,{encoded}",
    }


def encode_upload(file_storage, max_bytes=None) -> dict:
    """Build {fileName, fileUrl} from a werkzeug FileStorage (request.files[...])."""
    if file_storage is None or not file_storage.filename:
        raise ValueError("No file provided")
    data = file_storage.read()
    return encode_bytes(file_storage.filename, data, file_storage.mimetype, max_bytes=max_bytes)


def reference_file(file_name, file_url) -> dict:
    """Build {fileName, fileUrl} for a file hosted elsewhere."""
    if not file_name or not file_url:
        raise ValueError("fileName and fileUrl are required")
    parsed = urlparse(file_url)
    if parsed.scheme not in ("http", "https", "data") and not file_url.startswith("/"):
        raise ValueError(f"Unsupported file URL: {file_url[:40]}")
    return {"fileName": file_name, "fileUrl": file_url}
