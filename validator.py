"""Stateless precondition checks for API keys, images and output paths."""


import os
from pathlib import Path
from typing import Final

from errors import FileError, ValidationError

SUPPORTED_EXTENSIONS: Final[tuple[str, ...]] = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp")
MAX_IMAGE_BYTES: Final[int] = 20 * 1024 * 1024
MIN_API_KEY_LENGTH: Final[int] = 10


def validate_api_key(api_key: str | None) -> None:
	"""Reject empty or implausibly short keys; the provider is not contacted."""
	if not api_key or not api_key.strip():
		raise ValidationError("API key cannot be empty")
	if len(api_key) < MIN_API_KEY_LENGTH:
		raise ValidationError("API key appears to be too short")


def validate_image_path(image_path: str | Path | None) -> Path:
	"""Check that the image exists, is a regular file, fits the size cap and has a known extension.

	Returns:
		Path: The resolved absolute path of the image.
	"""
	if image_path is None or not str(image_path).strip():
		raise ValidationError("Image path cannot be empty")

	path = Path(image_path).expanduser().resolve()
	if not path.exists():
		raise FileError(f"Image file not found: {path}", path)
	if not path.is_file():
		raise FileError(f"Path is not a file: {path}", path)

	size = path.stat().st_size
	if size > MAX_IMAGE_BYTES:
		size_mb = round(size / 1024 / 1024)
		raise FileError(f"Image file too large: {size_mb}MB. Maximum size is 20MB", path)

	extension = path.suffix.lower()
	if extension not in SUPPORTED_EXTENSIONS:
		raise FileError(
			f"Unsupported file format: {extension or '(none)'}. Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}",
			path,
		)
	return path


def validate_output_path(output_path: str | Path) -> None:
	"""Ensure the parent directory of an output file exists and is writable."""
	directory = Path(output_path).expanduser().resolve().parent
	if not directory.is_dir():
		raise FileError(f"Output directory does not exist: {directory}", directory)
	if not os.access(directory, os.W_OK):
		raise FileError(f"Output directory is not writable: {directory}", directory)


def validate_model(model: str | None) -> None:
	"""Accept any model name so arbitrary OpenAI-compatible providers work."""
	return None
