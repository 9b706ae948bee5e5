"""Error taxonomy shared by the OCR client, the batch runner and the CLI."""


from pathlib import Path


class OcrError(Exception):
	"""Base class for all OCR tool failures, tagged with a machine-readable code."""

	code: str = "OCR_ERROR"

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class ValidationError(OcrError):
	"""Input has the wrong shape (API key, model, empty path)."""

	code = "VALIDATION_ERROR"


class FileError(OcrError):
	"""File-system state prevents processing (missing, oversized, wrong type)."""

	code = "FILE_ERROR"

	def __init__(self, message: str, file_path: str | Path | None = None) -> None:
		super().__init__(message)
		self.file_path = str(file_path) if file_path is not None else None


class ApiError(OcrError):
	"""The remote chat-completion call failed."""

	code = "API_ERROR"

	def __init__(self, message: str, status_code: int | None = None) -> None:
		super().__init__(message)
		self.status_code = status_code


class AuthenticationError(ApiError):
	"""The provider rejected the credentials (HTTP 401/403)."""

	code = "API_AUTH_ERROR"


class QuotaExceededError(ApiError):
	"""The provider reported rate or billing limits (HTTP 429)."""

	code = "API_QUOTA_EXCEEDED"


def api_error_for_status(status_code: int, message: str) -> ApiError:
	"""Map a non-success HTTP status to the matching ApiError variant."""
	if status_code in (401, 403):
		return AuthenticationError(f"Invalid API key or access denied: {message}", status_code)
	if status_code == 429:
		return QuotaExceededError(f"API quota exceeded: {message}", status_code)
	return ApiError(message, status_code)


def format_error(exc: BaseException) -> list[str]:
	"""Render an exception as the lines printed before a non-zero exit."""
	if isinstance(exc, OcrError):
		return [f"{exc.__class__.__name__}: {exc.message}", f"Error Code: {exc.code}"]
	message = str(exc)
	if message:
		return [f"Unexpected Error: {message}"]
	return ["An unknown error occurred"]
