"""Application configuration management for the vision OCR CLI."""


import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from dotenv import dotenv_values

from errors import ValidationError

ENV_FILE: Final[str] = ".env"
DEFAULT_BASE_URL: Final[str] = "https://api.openai.com/v1"
DEFAULT_MODEL: Final[str] = "gpt-4o-mini"
DEFAULT_LOG_LEVEL: Final[int] = logging.INFO

API_KEY_ENV: Final[str] = "OPENAI_API_KEY"
BASE_URL_ENV: Final[str] = "OPENAI_BASE_URL"
MODEL_ENV: Final[str] = "OPENAI_MODEL"
LOG_LEVEL_ENV: Final[str] = "OCR_LOG_LEVEL"
REQUIRED_ENV: Final[tuple[str, ...]] = (API_KEY_ENV,)


@dataclass(frozen=True)
class ApiCredentials:
	"""Endpoint, model and bearer token for one OpenAI-compatible provider."""
	api_key: str
	base_url: str = DEFAULT_BASE_URL
	model: str = DEFAULT_MODEL


@dataclass(frozen=True)
class AppConfig:
	"""Aggregate configuration for the CLI runtime."""
	api_key: str | None
	base_url: str | None
	model: str | None
	log_level: int = DEFAULT_LOG_LEVEL


def load_config(env_file: str | Path | None = ENV_FILE, environ: Mapping[str, str] | None = None) -> AppConfig:
	"""Load configuration from a dotenv file and the process environment.

	Values already present in the environment win over the dotenv file.
	Nothing is written back to ``os.environ``.

	Args:
		env_file: Path of the dotenv file; missing files are ignored.
		environ: Environment mapping, ``os.environ`` when omitted.

	Returns:
		AppConfig: Parsed configuration, with unset values left as None.
	"""
	values: dict[str, str | None] = {}
	if env_file is not None and Path(env_file).is_file():
		values.update(dotenv_values(env_file))
	values.update(os.environ if environ is None else environ)

	return AppConfig(
		api_key=values.get(API_KEY_ENV) or None,
		base_url=values.get(BASE_URL_ENV) or None,
		model=values.get(MODEL_ENV) or None,
		log_level=_parse_log_level(values.get(LOG_LEVEL_ENV)),
	)


def resolve_credentials(
	config: AppConfig,
	api_key: str | None = None,
	model: str | None = None,
	base_url: str | None = None,
) -> ApiCredentials:
	"""Combine CLI flags with configuration: flag > environment > default."""
	resolved_key = api_key or config.api_key
	if not resolved_key:
		raise ValidationError(
			f"API key is required. Use --api-key option or set {API_KEY_ENV} environment variable."
		)
	return ApiCredentials(
		api_key=resolved_key,
		base_url=base_url or config.base_url or DEFAULT_BASE_URL,
		model=model or config.model or DEFAULT_MODEL,
	)


def missing_environment(config: AppConfig) -> list[str]:
	"""List required environment variables that were not provided."""
	provided = {API_KEY_ENV: config.api_key}
	return [name for name in REQUIRED_ENV if not provided.get(name)]


def configure_logging(level: int = DEFAULT_LOG_LEVEL) -> None:
	"""Configure the root logger for the application."""
	logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _parse_log_level(name: str | None) -> int:
	"""Translate a level name such as ``DEBUG``; unknown names keep the default."""
	level = getattr(logging, (name or "").strip().upper(), None)
	return level if isinstance(level, int) else DEFAULT_LOG_LEVEL
