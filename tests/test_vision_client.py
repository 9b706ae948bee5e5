"""Tests for the vision chat-completion client using a mocked transport."""
from __future__ import annotations

import base64
import json

import httpx
import pydantic
import pytest

from config import ApiCredentials
from conftest import API_KEY, BASE_URL, PNG_BYTES, reply_with
from errors import ApiError, AuthenticationError, FileError, QuotaExceededError, ValidationError
from prompts import DEFAULT_OCR_PROMPT, INTENT_ANALYSIS_PROMPT, JSON_OUTPUT_MARKER
from providers.vision_client import MAX_TOKENS, VisionApiClient, extract_json_object

INTENT_PAYLOAD = {
	"original_text": "The quick brown fox jumps over the the lazy dog",
	"semantic_analysis": {
		"document_type": "note",
		"main_theme": "animals",
		"key_concepts": ["fox", "dog"],
		"logical_structure": "single sentence",
	},
	"modification_analysis": {
		"deletions": ["the"],
		"insertions": [],
		"replacements": [{"old": "quick", "new": "swift"}],
		"repositions": [{"content": "lazy", "from": "end", "to": "start"}],
		"annotations": [],
		"uncertain_items": [],
	},
	"operations": [
		{"type": "delete", "target": "the", "position": "before lazy"},
		{"type": "replace", "target": "quick", "new_content": "swift", "position": "word 2"},
	],
	"final_text": "The swift brown fox jumps over the lazy dog",
	"semantic_quality_check": {"coherence": "ok", "completeness": "ok", "accuracy": "ok"},
}


def test_plain_extraction_with_default_prompt(client_factory, image_factory, recorded_requests) -> None:
	"""A plain reply becomes the result text with no confidence or analysis."""
	client = client_factory(reply_with("Hello World"))
	result = client.perform_ocr(image_factory("page.png"))

	assert result.text == "Hello World"
	assert result.confidence is None
	assert result.language is None
	assert result.intent_analysis is None

	request = recorded_requests[0]
	assert request.method == "POST"
	assert str(request.url) == f"{BASE_URL}/chat/completions"
	assert request.headers["Authorization"] == f"Bearer {API_KEY}"

	body = json.loads(request.content)
	assert body["model"] == "test-vision-model"
	assert body["max_tokens"] == MAX_TOKENS == 4000
	[message] = body["messages"]
	assert message["role"] == "user"
	text_part, image_part = message["content"]
	assert text_part == {"type": "text", "text": DEFAULT_OCR_PROMPT}
	assert image_part["type"] == "image_url"
	expected_uri = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
	assert image_part["image_url"]["url"] == expected_uri


def test_custom_prompt_and_jpeg_mime(client_factory, image_factory, recorded_requests) -> None:
	client = client_factory(reply_with("  receipt total 12.50 \n"))
	result = client.perform_ocr(image_factory("receipt.JPEG"), "Read the receipt")

	assert result.text == "receipt total 12.50"
	text_part, image_part = json.loads(recorded_requests[0].content)["messages"][0]["content"]
	assert text_part["text"] == "Read the receipt"
	assert image_part["image_url"]["url"].startswith("data:image/jpeg;base64,")


def test_trailing_slash_in_base_url(client_factory, image_factory, recorded_requests) -> None:
	creds = ApiCredentials(api_key=API_KEY, base_url="https://proxy.example.test/v1/", model="m")
	client = client_factory(reply_with("ok"), creds)
	client.perform_ocr(image_factory())
	assert str(recorded_requests[0].url) == "https://proxy.example.test/v1/chat/completions"


def test_intent_analysis_final_text_is_authoritative(client_factory, image_factory, recorded_requests) -> None:
	"""The structured final_text wins over the raw reply."""
	reply = "Here is the analysis:\n```json\n" + json.dumps(INTENT_PAYLOAD, ensure_ascii=False) + "\n```\nDone."
	client = client_factory(reply_with(reply))
	result = client.perform_ocr_with_intent_analysis(image_factory())

	assert result.text == INTENT_PAYLOAD["final_text"]
	analysis = result.intent_analysis
	assert analysis is not None
	assert analysis.original_text == INTENT_PAYLOAD["original_text"]
	assert [operation.type for operation in analysis.operations] == ["delete", "replace"]
	assert analysis.operations[1].new_content == "swift"
	assert analysis.modification_analysis.repositions[0].from_ == "end"
	assert analysis.semantic_analysis.key_concepts == ["fox", "dog"]

	prompt = json.loads(recorded_requests[0].content)["messages"][0]["content"][0]["text"]
	assert prompt == INTENT_ANALYSIS_PROMPT
	assert JSON_OUTPUT_MARKER in prompt


@pytest.mark.parametrize(
	"reply",
	[
		'{"original_text": "abc", "final_text": "abd"}',
		'Result: {"original_text": "abc", "operations": [], "final_text": "ab',
		'{"original_text": "abc", "operations": [{"type": "rotate", "target": "x", "position": "1"}], "final_text": "x"}',
		"I could not find any edit marks in this image.",
		'{"original_text": "", "operations": [], "final_text": ""}',
		'{"original_text": "abc", "operations": [], "final_text": ""}',
	],
)
def test_incomplete_intent_json_falls_back_to_raw_text(client_factory, image_factory, reply: str) -> None:
	client = client_factory(reply_with(f"  {reply}\n"))
	result = client.perform_ocr_with_intent_analysis(image_factory())

	assert result.text == reply
	assert result.intent_analysis is None


def test_null_fields_in_optional_sections_keep_the_analysis(client_factory, image_factory) -> None:
	"""Nulls inside optional sections fall back to defaults instead of voiding final_text."""
	payload = {
		"original_text": "helo",
		"operations": [{"type": "replace", "target": "helo", "new_content": "hello", "position": "line 1"}],
		"final_text": "hello",
		"semantic_analysis": {
			"document_type": None,
			"main_theme": None,
			"key_concepts": None,
			"logical_structure": None,
		},
		"modification_analysis": {
			"deletions": None,
			"insertions": [{"position": None, "content": "x", "semantic_reason": None}],
			"repositions": [{"content": "p2", "from": None, "to": "top"}],
		},
		"semantic_quality_check": {"coherence": None, "completeness": "ok", "accuracy": None},
	}
	client = client_factory(reply_with(json.dumps(payload)))
	result = client.perform_ocr_with_intent_analysis(image_factory())

	assert result.text == "hello"
	analysis = result.intent_analysis
	assert analysis is not None
	assert analysis.semantic_analysis.key_concepts == []
	assert analysis.semantic_analysis.document_type == ""
	assert analysis.modification_analysis.deletions == []
	assert analysis.modification_analysis.insertions[0].position == ""
	assert analysis.modification_analysis.repositions[0].from_ == ""
	assert analysis.semantic_quality_check.completeness == "ok"
	assert analysis.semantic_quality_check.coherence == ""


def test_malformed_optional_section_is_dropped(client_factory, image_factory) -> None:
	payload = {
		"original_text": "helo",
		"operations": [],
		"final_text": "hello",
		"semantic_analysis": "not available",
		"modification_analysis": {"deletions": [None, {"bad": 1}]},
		"semantic_quality_check": {"coherence": "good"},
	}
	client = client_factory(reply_with(json.dumps(payload)))
	result = client.perform_ocr_with_intent_analysis(image_factory())

	assert result.text == "hello"
	assert result.intent_analysis.semantic_analysis is None
	assert result.intent_analysis.modification_analysis is None
	assert result.intent_analysis.semantic_quality_check.coherence == "good"


def test_intent_analysis_is_immutable(client_factory, image_factory) -> None:
	client = client_factory(reply_with(json.dumps(INTENT_PAYLOAD)))
	analysis = client.perform_ocr_with_intent_analysis(image_factory()).intent_analysis

	with pytest.raises(pydantic.ValidationError):
		analysis.final_text = "tampered"
	with pytest.raises(pydantic.ValidationError):
		analysis.operations[0].target = "tampered"
	with pytest.raises(pydantic.ValidationError):
		analysis.semantic_quality_check.coherence = "tampered"


def test_json_reply_is_not_parsed_without_json_prompt(client_factory, image_factory) -> None:
	reply = json.dumps(INTENT_PAYLOAD)
	client = client_factory(reply_with(reply))
	result = client.perform_ocr(image_factory(), "Transcribe everything")

	assert result.text == reply
	assert result.intent_analysis is None


def test_custom_prompt_with_marker_enables_parsing(client_factory, image_factory) -> None:
	client = client_factory(reply_with(json.dumps(INTENT_PAYLOAD)))
	result = client.perform_ocr(image_factory(), f"请按照以下{JSON_OUTPUT_MARKER}结果")
	assert result.text == INTENT_PAYLOAD["final_text"]


def test_unauthorized_response_raises_authentication_error(client_factory, image_factory) -> None:
	handler = lambda request: httpx.Response(401, json={"error": {"message": "invalid api key"}})
	client = client_factory(handler)

	with pytest.raises(AuthenticationError) as excinfo:
		client.perform_ocr(image_factory())

	assert isinstance(excinfo.value, ApiError)
	assert "invalid api key" in str(excinfo.value)
	assert "401" in str(excinfo.value)
	assert excinfo.value.status_code == 401


def test_forbidden_response_is_authentication_error(client_factory, image_factory) -> None:
	client = client_factory(lambda request: httpx.Response(403, json={"error": {"message": "forbidden"}}))
	with pytest.raises(AuthenticationError):
		client.perform_ocr(image_factory())


def test_rate_limited_response_raises_quota_error(client_factory, image_factory) -> None:
	handler = lambda request: httpx.Response(429, json={"error": {"message": "You exceeded your current quota"}})
	client = client_factory(handler)

	with pytest.raises(QuotaExceededError) as excinfo:
		client.perform_ocr(image_factory())
	assert excinfo.value.status_code == 429


def test_quota_wording_on_other_status_stays_generic(client_factory, image_factory) -> None:
	"""Classification follows the status code, not words in the message."""
	handler = lambda request: httpx.Response(400, json={"error": {"message": "quota field invalid, check API key"}})
	client = client_factory(handler)

	with pytest.raises(ApiError) as excinfo:
		client.perform_ocr(image_factory())
	assert type(excinfo.value) is ApiError
	assert excinfo.value.status_code == 400


def test_server_error_without_body(client_factory, image_factory) -> None:
	client = client_factory(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))
	with pytest.raises(ApiError, match="502 Bad Gateway - Unknown error"):
		client.perform_ocr(image_factory())


def test_transport_failure_becomes_api_error(client_factory, image_factory) -> None:
	def handler(request: httpx.Request) -> httpx.Response:
		raise httpx.ConnectError("connection refused", request=request)

	client = client_factory(handler)
	with pytest.raises(ApiError, match="connection refused") as excinfo:
		client.perform_ocr(image_factory())
	assert excinfo.value.status_code is None


@pytest.mark.parametrize(
	"handler",
	[
		lambda request: httpx.Response(200, json={"id": "abc"}),
		lambda request: httpx.Response(200, json={"choices": []}),
		lambda request: httpx.Response(200, text="not json"),
	],
)
def test_undecodable_success_response_raises_api_error(client_factory, image_factory, handler) -> None:
	client = client_factory(handler)
	with pytest.raises(ApiError):
		client.perform_ocr(image_factory())


def test_null_content_yields_empty_text(client_factory, image_factory) -> None:
	client = client_factory(reply_with(None))
	assert client.perform_ocr(image_factory()).text == ""


def test_missing_image_is_reported_before_any_request(client_factory, tmp_path, recorded_requests) -> None:
	client = client_factory(reply_with("unused"))
	with pytest.raises(FileError):
		client.perform_ocr(tmp_path / "absent.png")
	assert recorded_requests == []


def test_constructor_rejects_short_api_key() -> None:
	with pytest.raises(ValidationError):
		VisionApiClient(ApiCredentials(api_key="abc"))


def test_credentials_defaults() -> None:
	with VisionApiClient(ApiCredentials(api_key=API_KEY)) as client:
		assert client.base_url == "https://api.openai.com/v1"
		assert client.model == "gpt-4o-mini"


def test_extract_json_object_skips_leading_noise() -> None:
	text = 'Notes {not json} then {"a": {"b": [1, 2]}, "c": "}"} trailing }'
	assert extract_json_object(text) == {"a": {"b": [1, 2]}, "c": "}"}
	assert extract_json_object("no braces here") is None
