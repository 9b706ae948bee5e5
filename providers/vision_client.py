"""OpenAI-compatible vision chat-completion client."""


import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import pydantic

from config import DEFAULT_BASE_URL, DEFAULT_MODEL, ApiCredentials
from errors import ApiError, FileError, api_error_for_status
from prompts import DEFAULT_OCR_PROMPT, INTENT_ANALYSIS_PROMPT, requests_json_output
from schemas import ChatCompletionResponse, IntentAnalysisResult, OcrResult, ProviderErrorBody
from utils.image_io import build_data_uri
from validator import validate_api_key, validate_image_path, validate_model

MAX_TOKENS = 4000
DEFAULT_TIMEOUT = 120.0

_JSON_DECODER = json.JSONDecoder()


def extract_json_object(text: str) -> dict[str, Any] | None:
	"""Return the first top-level JSON object embedded in free text, if any."""
	start = text.find("{")
	while start != -1:
		try:
			value, _ = _JSON_DECODER.raw_decode(text, start)
		except json.JSONDecodeError:
			start = text.find("{", start + 1)
			continue
		if isinstance(value, dict):
			return value
		start = text.find("{", start + 1)
	return None


@dataclass
class VisionApiClient:
	"""Client for image OCR and handwriting intent analysis over chat completions."""

	credentials: ApiCredentials
	http_client: httpx.Client | None = None
	timeout: float = DEFAULT_TIMEOUT

	def __post_init__(self) -> None:
		validate_api_key(self.credentials.api_key)
		validate_model(self.credentials.model)
		self._logger = logging.getLogger(self.__class__.__name__)
		self._owns_http = self.http_client is None
		self._http = self.http_client if self.http_client is not None else httpx.Client(timeout=self.timeout)

	@property
	def base_url(self) -> str:
		return (self.credentials.base_url or DEFAULT_BASE_URL).rstrip("/")

	@property
	def model(self) -> str:
		return self.credentials.model or DEFAULT_MODEL

	def perform_ocr_with_intent_analysis(self, image_path: str | Path) -> OcrResult:
		return self.perform_ocr(image_path, INTENT_ANALYSIS_PROMPT)

	def perform_ocr(self, image_path: str | Path, prompt: str | None = None) -> OcrResult:
		"""Send one image to the model and return the extracted text.

		When the prompt asks for JSON, the reply is scanned for an intent-analysis
		object; if it is present and complete its ``final_text`` replaces the raw
		reply, otherwise the trimmed reply is returned as-is.

		Raises:
			ValidationError: The path is empty.
			FileError: The image is missing, unreadable, too large or of an unsupported type.
			ApiError: The request failed; AuthenticationError and QuotaExceededError
				are raised for HTTP 401/403 and 429 respectively.
		"""
		path = validate_image_path(image_path)
		payload = self._build_payload(path, prompt or DEFAULT_OCR_PROMPT)
		text = self._request_completion(payload)

		intent_analysis = None
		if requests_json_output(prompt):
			intent_analysis = self._parse_intent_analysis(text)

		return OcrResult(
			text=intent_analysis.final_text if intent_analysis else text,
			confidence=None,
			language=None,
			intent_analysis=intent_analysis,
		)

	def close(self) -> None:
		if self._owns_http:
			self._http.close()

	def __enter__(self) -> "VisionApiClient":
		return self

	def __exit__(self, *exc_info: object) -> None:
		self.close()

	def _build_payload(self, path: Path, prompt: str) -> dict[str, Any]:
		try:
			image_url = build_data_uri(path)
		except OSError as exc:
			raise FileError(f"Unable to read image file: {path} ({exc})", path) from exc
		return {
			"model": self.model,
			"messages": [
				{
					"role": "user",
					"content": [
						{"type": "text", "text": prompt},
						{"type": "image_url", "image_url": {"url": image_url}},
					],
				}
			],
			"max_tokens": MAX_TOKENS,
		}

	def _request_completion(self, payload: dict[str, Any]) -> str:
		url = f"{self.base_url}/chat/completions"
		headers = {"Authorization": f"Bearer {self.credentials.api_key}"}
		self._logger.debug("POST %s (model=%s)", url, self.model)
		try:
			response = self._http.post(url, json=payload, headers=headers)
		except httpx.HTTPError as exc:
			raise ApiError(f"OCR failed: {exc}") from exc

		self._logger.debug("Received HTTP %s (%s bytes)", response.status_code, len(response.content))
		if not response.is_success:
			raise api_error_for_status(response.status_code, self._describe_failure(response))
		return self._decode_completion(response)

	def _describe_failure(self, response: httpx.Response) -> str:
		provider_message = None
		try:
			body = ProviderErrorBody.model_validate_json(response.content)
		except pydantic.ValidationError:
			body = None
		if body is not None and body.error is not None:
			provider_message = body.error.message
		return (
			f"API request failed: {response.status_code} {response.reason_phrase} - "
			f"{provider_message or 'Unknown error'}"
		)

	def _decode_completion(self, response: httpx.Response) -> str:
		try:
			completion = ChatCompletionResponse.model_validate_json(response.content)
		except pydantic.ValidationError as exc:
			raise ApiError(
				f"OCR failed: unexpected response format ({exc.error_count()} validation errors)",
				response.status_code,
			) from exc
		if not completion.choices:
			raise ApiError("OCR failed: response contained no choices", response.status_code)
		return (completion.choices[0].message.content or "").strip()

	def _parse_intent_analysis(self, text: str) -> IntentAnalysisResult | None:
		candidate = extract_json_object(text)
		if candidate is None:
			self._logger.warning("No JSON object found in intent analysis response; using plain text")
			return None
		try:
			return IntentAnalysisResult.model_validate(candidate)
		except pydantic.ValidationError as exc:
			self._logger.warning("Discarding incomplete intent analysis payload: %s", exc)
			return None
