"""Custom validation utilities for uploads."""

import mimetypes
import re

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif", "heic"}


def slugify_segment(value: str, max_length: int = 60) -> str:
    """Reduce free text to a safe storage key segment.

    Args:
        value: Free text such as a requirement name

    Returns:
        str: Lowercase ASCII segment like 'proof-of-purchase'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", value).strip("-").lower()
    return cleaned[:max_length].rstrip("-") or "document"


def file_extension(filename: str, default: str = "bin") -> str:
    """Lowercase extension of a filename without the dot."""
    if "." not in filename:
        return default
    ext = filename.rsplit(".", 1)[-1].lower()
    return ext if ext.isalnum() else default


def resolve_mime_type(declared: str | None, filename: str) -> str:
    """Declared content type, falling back to a guess from the filename.

    Browsers send ``application/octet-stream`` for unknown files, so that
    value is treated as missing.
    """
    if declared and declared != "application/octet-stream":
        return declared.split(";", 1)[0].strip().lower()
    guessed, _ = mimetypes.guess_type(filename)
    if guessed:
        return guessed
    if file_extension(filename, "") in IMAGE_EXTENSIONS:
        return f"image/{file_extension(filename)}"
    return "application/octet-stream"


def mime_family(mime_type: str) -> str:
    """Verification strategy for a MIME type: image, pdf or other."""
    if mime_type.startswith("image/"):
        return "image"
    if mime_type == "application/pdf":
        return "pdf"
    return "other"
