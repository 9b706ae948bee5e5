"""Persistence utilities for extracted text and JSON reports."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

TEXT_SUFFIX = ".txt"

def to_json(data: Any) -> str:
	"""Serialize a report with the formatting used for console and file output."""
	return json.dumps(data, ensure_ascii=False, indent=2)

def dump_json(data: Any, path: Path) -> Path:
	"""Persist a JSON-serializable value as formatted JSON."""
	path.write_text(to_json(data), encoding="utf-8")
	return path

def dump_text(text: str, path: Path) -> Path:
	"""Persist extracted text as UTF-8."""
	path.write_text(text, encoding="utf-8")
	return path

def build_output_path(output_dir: Path, image_path: str | Path) -> Path:
	"""Compose the batch output path for an image: ``<output_dir>/<stem>.txt``."""
	return output_dir.joinpath(f"{Path(image_path).stem}{TEXT_SUFFIX}")
