"""Pydantic schemas for OCR results, intent analysis and the chat-completion wire format."""


from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

EditOperationType = Literal["delete", "insert", "replace", "swap", "modify", "annotate", "semantic_correct"]


class EditOperation(BaseModel):
	"""One edit instruction inferred from handwritten marks on the page."""
	model_config = ConfigDict(frozen=True)

	type: EditOperationType
	target: str
	new_content: str | None = None
	position: str
	intent: str | None = None
	semantic_justification: str | None = None


class AnalysisSection(BaseModel):
	"""Optional part of an intent analysis; null fields fall back to their defaults."""
	model_config = ConfigDict(frozen=True)

	@model_validator(mode="before")
	@classmethod
	def _drop_nulls(cls, data: Any) -> Any:
		if isinstance(data, dict):
			return {key: value for key, value in data.items() if value is not None}
		return data


class SemanticAnalysis(AnalysisSection):
	document_type: str = ""
	main_theme: str = ""
	key_concepts: list[str] = Field(default_factory=list)
	logical_structure: str = ""


class Insertion(AnalysisSection):
	position: str = ""
	content: str = ""
	semantic_reason: str | None = None


class Replacement(AnalysisSection):
	old: str = ""
	new: str = ""
	semantic_reason: str | None = None


class Reposition(AnalysisSection):
	model_config = ConfigDict(populate_by_name=True)

	content: str = ""
	from_: str = Field(default="", alias="from")
	to: str = ""
	semantic_reason: str | None = None


class ModificationAnalysis(AnalysisSection):
	deletions: list[str] = Field(default_factory=list)
	insertions: list[Insertion] = Field(default_factory=list)
	replacements: list[Replacement] = Field(default_factory=list)
	repositions: list[Reposition] = Field(default_factory=list)
	annotations: list[str] = Field(default_factory=list)
	uncertain_items: list[str] = Field(default_factory=list)
	semantic_corrections: list[str] = Field(default_factory=list)


class SemanticQualityCheck(AnalysisSection):
	coherence: str = ""
	completeness: str = ""
	accuracy: str = ""


class IntentAnalysisResult(BaseModel):
	"""Structured reconstruction of a handwritten edit; final_text is authoritative.

	Only the three core fields decide acceptance. An optional section that
	still fails validation is dropped rather than rejecting the analysis.
	"""
	model_config = ConfigDict(frozen=True)

	original_text: str = Field(min_length=1)
	operations: list[EditOperation]
	final_text: str = Field(min_length=1)
	semantic_analysis: SemanticAnalysis | None = None
	modification_analysis: ModificationAnalysis | None = None
	semantic_quality_check: SemanticQualityCheck | None = None

	@field_validator("semantic_analysis", "modification_analysis", "semantic_quality_check", mode="wrap")
	@classmethod
	def _discard_malformed_section(cls, value: Any, handler: Any) -> Any:
		try:
			return handler(value)
		except ValidationError:
			return None


class OcrResult(BaseModel):
	"""Per-image OCR output returned to callers."""
	model_config = ConfigDict(frozen=True)

	text: str
	confidence: float | None = None
	language: str | None = None
	intent_analysis: IntentAnalysisResult | None = None


class OcrOptions(BaseModel):
	"""Single-image request issued through the tool layer."""
	api_key: str
	image_path: str
	prompt: str | None = None


class ChatMessage(BaseModel):
	role: str | None = None
	content: str | None = None


class ChatChoice(BaseModel):
	message: ChatMessage


class ChatCompletionResponse(BaseModel):
	"""Subset of the chat-completion response the client relies on."""
	choices: list[ChatChoice]


class ProviderErrorDetail(BaseModel):
	message: str | None = None


class ProviderErrorBody(BaseModel):
	error: ProviderErrorDetail | None = None
