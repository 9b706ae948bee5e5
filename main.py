"""Command-line interface for OCR and handwriting intent analysis over a vision API."""
from __future__ import annotations

import argparse
import logging
import sys
from contextlib import closing
from pathlib import Path
from collections.abc import Callable
from typing import Any

from config import (
	DEFAULT_MODEL,
	ApiCredentials,
	AppConfig,
	configure_logging,
	load_config,
	missing_environment,
	resolve_credentials,
)
from errors import OcrError, format_error
from schemas import OcrOptions, OcrResult
from tool import OcrTool
from utils.io_json import build_output_path, dump_json, dump_text, to_json
from validator import validate_image_path, validate_output_path


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
	"""Parse command-line arguments."""
	parser = argparse.ArgumentParser(prog="vision-ocr", description="OCR tool using an OpenAI compatible vision API")
	parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
	subparsers = parser.add_subparsers(dest="command", required=True)

	api = argparse.ArgumentParser(add_help=False)
	api.add_argument("-k", "--api-key", help="OpenAI compatible API key")
	api.add_argument("-m", "--model", help=f"Model to use (default: {DEFAULT_MODEL})")
	api.add_argument("-u", "--base-url", help="Custom base URL for API")
	api.add_argument("-j", "--json", action="store_true", help="Output result in JSON format")

	extract = subparsers.add_parser("extract", parents=[api], help="Extract text from an image")
	extract.add_argument("image", help="Path to the image file")
	extract.add_argument("-p", "--prompt", help="Custom prompt for OCR extraction")
	extract.add_argument("-o", "--output", help="Output file path")

	batch = subparsers.add_parser("batch", parents=[api], help="Extract text from multiple images")
	batch.add_argument("images", nargs="+", help="Paths to image files")
	batch.add_argument("-p", "--prompt", help="Custom prompt for OCR extraction")
	batch.add_argument("-o", "--output-dir", help="Output directory for text files")

	analyze = subparsers.add_parser(
		"analyze",
		parents=[api],
		help="Analyze handwritten editing intentions (insertions, deletions, replacements, etc.)",
	)
	analyze.add_argument("image", help="Path to the image file")
	analyze.add_argument("-o", "--output", help="Output file path")

	subparsers.add_parser("formats", help="List supported image formats")
	return parser.parse_args(argv)


def run(args: argparse.Namespace, config: AppConfig) -> int:
	"""Dispatch the parsed command and return the process exit code."""
	handlers: dict[str, Callable[[argparse.Namespace, AppConfig], int]] = {
		"extract": _run_extract,
		"batch": _run_batch,
		"analyze": _run_analyze,
		"formats": _run_formats,
	}
	return handlers[args.command](args, config)


def main(argv: list[str] | None = None) -> int:
	"""Entry point for the CLI application."""
	args = parse_arguments(argv)
	config = load_config()
	configure_logging(logging.DEBUG if args.verbose else config.log_level)
	try:
		return run(args, config)
	except OcrError as exc:
		_print_error(exc)
		return 1
	except Exception as exc:  # noqa: BLE001
		logging.exception("OCR processing failed: %s", exc)
		_print_error(exc)
		return 1


def _run_extract(args: argparse.Namespace, config: AppConfig) -> int:
	credentials = _credentials(args, config)
	validate_image_path(args.image)
	if args.output:
		validate_output_path(args.output)

	logging.info("Processing image: %s", args.image)
	logging.info("Using model: %s", credentials.model)
	with closing(OcrTool(credentials)) as tool:
		result = tool.process_image(
			OcrOptions(api_key=credentials.api_key, image_path=args.image, prompt=args.prompt)
		)

	if args.json:
		report = {"success": True, "image_path": args.image, "model": credentials.model, "result": _dump(result)}
		_emit_json(report, args.output)
	else:
		_emit_text(result.text, args.output, "Extracted Text")
	return 0


def _run_batch(args: argparse.Namespace, config: AppConfig) -> int:
	credentials = _credentials(args, config)
	output_dir = Path(args.output_dir).expanduser().resolve() if args.output_dir else None
	if output_dir is not None:
		output_dir.mkdir(parents=True, exist_ok=True)

	logging.info("Processing %s images...", len(args.images))
	logging.info("Using model: %s", credentials.model)
	with closing(OcrTool(credentials)) as tool:
		results = tool.process_multiple_images(args.images, args.prompt)

	report: list[dict[str, Any]] = []
	for image_path, result in zip(args.images, results):
		saved_to = None
		if output_dir is not None:
			saved_to = dump_text(result.text, build_output_path(output_dir, image_path))
			logging.info("Saved to: %s", saved_to)
		if args.json:
			report.append(
				{
					"image_path": image_path,
					"output_path": str(saved_to) if saved_to else None,
					"result": _dump(result),
				}
			)
		else:
			print(f"\n--- {Path(image_path).name} ---")
			print(result.text)

	if args.json:
		print(to_json(report))
	return 0


def _run_analyze(args: argparse.Namespace, config: AppConfig) -> int:
	credentials = _credentials(args, config)
	validate_image_path(args.image)
	if args.output:
		validate_output_path(args.output)

	logging.info("Analyzing editing intentions in image: %s", args.image)
	logging.info("Using model: %s", credentials.model)
	with closing(OcrTool(credentials)) as tool:
		result = tool.process_image_with_intent_analysis(
			OcrOptions(api_key=credentials.api_key, image_path=args.image)
		)

	if args.json:
		report = {
			"success": True,
			"image_path": args.image,
			"model": credentials.model,
			"structured": result.intent_analysis is not None,
			"result": _dump(result),
		}
		_emit_json(report, args.output)
	else:
		if result.intent_analysis is None:
			logging.warning("Model reply contained no usable intent analysis; showing raw text")
		_emit_text(result.text, args.output, "Editing Intention Analysis")
	return 0


def _run_formats(args: argparse.Namespace, config: AppConfig) -> int:
	print("Supported image formats:")
	for extension in OcrTool.get_supported_formats():
		print(f"  {extension}")
	return 0


def _credentials(args: argparse.Namespace, config: AppConfig) -> ApiCredentials:
	if not args.api_key:
		for name in missing_environment(config):
			logging.debug("Environment variable %s is not set", name)
	return resolve_credentials(config, api_key=args.api_key, model=args.model, base_url=args.base_url)


def _dump(result: OcrResult) -> dict[str, Any]:
	return result.model_dump(mode="json", by_alias=True)


def _emit_json(report: dict[str, Any], output: str | None) -> None:
	if output:
		path = dump_json(report, Path(output).expanduser())
		logging.info("JSON result saved to: %s", path)
	else:
		print(to_json(report))


def _emit_text(text: str, output: str | None, title: str) -> None:
	if output:
		path = dump_text(text, Path(output).expanduser())
		logging.info("Result saved to: %s", path)
	else:
		print(f"\n--- {title} ---")
		print(text)
		print("--- End ---\n")


def _print_error(exc: BaseException) -> None:
	for line in format_error(exc):
		print(line, file=sys.stderr)


if __name__ == "__main__":
	raise SystemExit(main())
