from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import structlog
from dotenv import load_dotenv
from pydantic import TypeAdapter, ValidationError

from evidence_trust.engine.confidence import ConfidenceEngine
from evidence_trust.engine.quality import QualityEngine
from evidence_trust.models.claims import ClaimField, ExtractionRequest, ExtractionResponse, PersonaClaims
from evidence_trust.models.evidence import EvidenceContext, QualityRequest
from evidence_trust.utils.errors import EvidenceTrustError
from evidence_trust.validation.citation_validator import CitationValidator
from evidence_trust.validation.grounding_validator import GroundingValidator

logger = structlog.get_logger(__name__)

COMMANDS = ("quality", "confidence", "citations", "grounding")

_QUALITY_REQUESTS = TypeAdapter(list[QualityRequest])
_PERSONAS = TypeAdapter(list[PersonaClaims])
_CLAIMS = TypeAdapter(list[ClaimField])
_EVIDENCE = TypeAdapter(list[EvidenceContext])


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--input",
        dest="input_path",
        required=True,
        help="Path to the JSON payload",
    )
    parser.add_argument(
        "--output",
        dest="output_path",
        default="",
        help="Optional output JSON file path. If not set, prints to stdout.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=os.getenv("EVIDENCE_TRUST_LOG_LEVEL", "WARNING"),
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--dotenv",
        dest="dotenv_path",
        default=".env",
        help="Path to .env file to load (default: .env at repo root)",
    )


def build_parser(command: str) -> argparse.ArgumentParser:
    descriptions = {
        "quality": "Score evidence quality. Payload: {\"evidence\": [...], \"config\": {...}}",
        "confidence": "Score persona claim confidence. Payload: {\"personas\": [...], \"calibration\": [...]}",
        "citations": "Validate claim citations. Payload: {\"claims\": [...], \"evidence\": [...]}",
        "grounding": "Validate grounding. Payload: {\"response\": {...}, \"request\": {...}, \"evidence\": [...]}",
    }
    parser = argparse.ArgumentParser(prog=f"evidence-trust {command}", description=descriptions[command])
    _add_common_arguments(parser)
    if command == "quality":
        parser.add_argument(
            "--mode",
            choices=["fast", "balanced", "thorough"],
            default="",
            help="Performance mode override",
        )
    return parser


def configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.WARNING)
    logging.basicConfig(level=level, stream=sys.stderr)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def run_quality(payload: dict[str, Any], mode: str = "") -> dict[str, Any]:
    config = dict(payload.get("config") or {})
    if mode:
        config["performance_mode"] = mode
    engine = QualityEngine(config or None)
    requests = _QUALITY_REQUESTS.validate_python(payload.get("evidence", []))
    assessments = engine.assess_batch(requests)
    return {"assessments": [a.to_dict() for a in assessments]}


def run_confidence(payload: dict[str, Any]) -> dict[str, Any]:
    engine = ConfidenceEngine(payload.get("config"), scorer_config=payload.get("scorer_config"))
    for point in payload.get("calibration", []):
        engine.add_calibration_point(**point)
    personas = _PERSONAS.validate_python(payload.get("personas", []))
    return engine.process_batch(personas).to_dict()


def run_citations(payload: dict[str, Any]) -> dict[str, Any]:
    validator = CitationValidator(payload.get("config"))
    claims = _CLAIMS.validate_python(payload.get("claims", []))
    evidence = _EVIDENCE.validate_python(payload.get("evidence", []))
    return validator.validate(claims, evidence).model_dump()


def run_grounding(payload: dict[str, Any]) -> dict[str, Any]:
    validator = GroundingValidator(payload.get("config"), citation_config=payload.get("citation_config"))
    response = ExtractionResponse.model_validate(payload.get("response", {}))
    request = ExtractionRequest.model_validate(payload.get("request", {}))
    evidence = _EVIDENCE.validate_python(payload.get("evidence", []))
    return validator.validate(response, request, evidence).model_dump()


def _write(result: dict[str, Any], output_path: str) -> None:
    text = json.dumps(result, indent=2, default=str)
    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(text, encoding="utf-8")
        logger.info("output_written", path=str(output_file))
    else:
        print(text)


def main(argv: Optional[list[str]] = None) -> int:
    argv_list = list(argv) if argv is not None else sys.argv[1:]

    if not argv_list or argv_list[0] not in COMMANDS:
        print(f"usage: evidence-trust {{{','.join(COMMANDS)}}} --input PAYLOAD.json", file=sys.stderr)
        return 1

    command = argv_list[0]
    args = build_parser(command).parse_args(argv_list[1:])
    load_dotenv(args.dotenv_path)
    configure_logging(args.log_level)

    try:
        payload = json.loads(Path(args.input_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Could not read payload {args.input_path}: {exc}", file=sys.stderr)
        return 1
    if not isinstance(payload, dict):
        print("Payload must be a JSON object", file=sys.stderr)
        return 1

    runners: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
        "quality": lambda p: run_quality(p, mode=args.mode),
        "confidence": run_confidence,
        "citations": run_citations,
        "grounding": run_grounding,
    }
    try:
        result = runners[command](payload)
    except (ValidationError, KeyError, TypeError) as exc:
        print(f"Invalid payload: {exc}", file=sys.stderr)
        return 1
    except EvidenceTrustError as exc:
        print(exc.get_user_message(), file=sys.stderr)
        return 1

    _write(result, args.output_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
