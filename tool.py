"""Tool layer: single-image and failure-isolating batch OCR over one client."""


import logging
from collections.abc import Sequence
from pathlib import Path

from config import ApiCredentials
from errors import OcrError
from providers.vision_client import VisionApiClient
from schemas import OcrOptions, OcrResult
from validator import SUPPORTED_EXTENSIONS, validate_api_key, validate_image_path


class OcrTool:
	"""Validates inputs and routes images through a VisionApiClient."""

	def __init__(self, credentials: ApiCredentials, client: VisionApiClient | None = None) -> None:
		self._logger = logging.getLogger(self.__class__.__name__)
		self.client = client if client is not None else VisionApiClient(credentials)

	def process_image(self, options: OcrOptions) -> OcrResult:
		absolute_path = self._prepare(options)
		return self.client.perform_ocr(absolute_path, options.prompt)

	def process_image_with_intent_analysis(self, options: OcrOptions) -> OcrResult:
		absolute_path = self._prepare(options)
		return self.client.perform_ocr_with_intent_analysis(absolute_path)

	def process_multiple_images(self, image_paths: Sequence[str], prompt: str | None = None) -> list[OcrResult]:
		"""Process images in order, replacing each failure with a placeholder result.

		The returned list always has one entry per input path. A failed image
		yields ``confidence=0`` and text of the form
		``"Error processing <path>: <message>"``.
		"""
		results: list[OcrResult] = []
		for index, image_path in enumerate(image_paths, start=1):
			self._logger.info("Processing image %s/%s: %s", index, len(image_paths), image_path)
			try:
				absolute_path = validate_image_path(image_path)
				results.append(self.client.perform_ocr(absolute_path, prompt))
			except Exception as exc:  # noqa: BLE001
				message = str(exc) if isinstance(exc, OcrError) else f"Unknown error: {exc}"
				self._logger.warning("Failed to process %s: %s", image_path, message)
				results.append(OcrResult(text=f"Error processing {image_path}: {message}", confidence=0))
		return results

	@staticmethod
	def get_supported_formats() -> list[str]:
		return list(SUPPORTED_EXTENSIONS)

	def close(self) -> None:
		self.client.close()

	def _prepare(self, options: OcrOptions) -> Path:
		validate_api_key(options.api_key)
		return validate_image_path(options.image_path)
