"""Utility helpers for working with input images."""

import base64
from pathlib import Path

MIME_TYPES: dict[str, str] = {
	".png": "image/png",
	".jpg": "image/jpeg",
	".jpeg": "image/jpeg",
	".gif": "image/gif",
	".webp": "image/webp",
	".bmp": "image/bmp",
}
DEFAULT_MIME_TYPE = "image/jpeg"

def read_image_base64(path: Path) -> str:
	"""Read image bytes and encode them as base64 for HTTP payloads."""
	data = path.read_bytes()
	return base64.b64encode(data).decode("utf-8")

def guess_mime_type(path: str | Path) -> str:
	"""Map the file extension to a MIME type, falling back to JPEG."""
	return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)

def build_data_uri(path: Path) -> str:
	"""Inline an image as a data URI suitable for an image_url content part."""
	return f"data:{guess_mime_type(path)};base64,{read_image_base64(path)}"
