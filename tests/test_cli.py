from __future__ import annotations

import json
from pathlib import Path

import pytest

from evidence_trust.cli import build_parser, main

CLAIM_TEXT = "Jane Doe leads the data platform team at Acme Corporation"

EVIDENCE = [
    {"unit": {"id": "ev-1", "source_id": "src-1", "text": CLAIM_TEXT}, "quality_score": 0.9},
    {"unit": {"id": "ev-2", "source_id": "src-2", "text": CLAIM_TEXT}, "quality_score": 0.9},
]

CLAIM = {
    "field_name": "job_title",
    "text": f"{CLAIM_TEXT} [evidence_ev-1] [evidence_ev-2]",
    "confidence": 0.9,
    "citations": [
        {"sentence_index": 0, "evidence_unit_ids": ["ev-1"], "confidence": 0.9},
        {"sentence_index": 0, "evidence_unit_ids": ["ev-2"], "confidence": 0.9},
    ],
}


def write_payload(tmp_path: Path, payload) -> str:
    path = tmp_path / "payload.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def run(tmp_path: Path, command: str, payload, *extra: str) -> tuple[int, Path]:
    out_path = tmp_path / "out" / "result.json"
    code = main([
        command,
        "--input", write_payload(tmp_path, payload),
        "--output", str(out_path),
        "--dotenv", str(tmp_path / "missing.env"),
        *extra,
    ])
    return code, out_path


def test_cli_parser_builds() -> None:
    args = build_parser("quality").parse_args(["--input", "payload.json", "--mode", "fast"])

    assert args.input_path == "payload.json"
    assert args.mode == "fast"
    assert isinstance(args.output_path, str)
    assert isinstance(args.log_level, str)


def test_cli_quality_writes_output(tmp_path: Path) -> None:
    payload = {
        "evidence": [
            {
                "unit": {"id": "ev-1", "source_id": "src-1", "text": CLAIM_TEXT},
                "source": {"id": "src-1", "tier": "REPUTABLE", "url": "https://www.reuters.com/acme"},
            }
        ]
    }
    code, out_path = run(tmp_path, "quality", payload, "--mode", "fast")

    assert code == 0
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert data["assessments"][0]["evidence_id"] == "ev-1"
    assert "corroboration" not in data["assessments"][0]["components"]


def test_cli_confidence_writes_output(tmp_path: Path) -> None:
    payload = {
        "config": {"enable_calibration": True},
        "calibration": [
            {"claim_text": "a", "predicted_confidence": 0.8, "human_judgment": 1.0},
            {"claim_text": "b", "predicted_confidence": 0.2, "human_judgment": 0.0},
        ],
        "personas": [{"id": "p-1", "claims": [CLAIM], "evidence": EVIDENCE}, {"id": "p-2"}],
    }
    code, out_path = run(tmp_path, "confidence", payload)

    assert code == 0
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert list(data["assessments"]) == ["p-1", "p-2"]
    assert data["assessments"]["p-2"]["recommendation"] == "reject"
    assert data["calibration"]["sample_size"] == 2


def test_cli_citations_writes_output(tmp_path: Path) -> None:
    code, out_path = run(tmp_path, "citations", {"claims": [CLAIM], "evidence": EVIDENCE})

    assert code == 0
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert data["is_valid"] is True
    assert data["statistics"]["total_citations"] == 2


def test_cli_grounding_prints_to_stdout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    payload = {"response": {"success": True, "claims": [CLAIM]}, "request": {}, "evidence": EVIDENCE}
    code = main([
        "grounding",
        "--input", write_payload(tmp_path, payload),
        "--dotenv", str(tmp_path / "missing.env"),
    ])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["is_grounded"] is True


def test_cli_unknown_command_fails() -> None:
    assert main(["atomize"]) == 1


def test_cli_missing_payload_fails(tmp_path: Path) -> None:
    code = main(["citations", "--input", str(tmp_path / "nope.json"), "--dotenv", str(tmp_path / "x.env")])
    assert code == 1


def test_cli_invalid_payload_fails(tmp_path: Path) -> None:
    code, out_path = run(tmp_path, "citations", {"claims": [{"text": "no field name"}]})
    assert code == 1
    assert not out_path.exists()


def test_cli_invalid_config_fails(tmp_path: Path) -> None:
    code, _ = run(tmp_path, "quality", {"config": {"weights": {"authority": 0.9}}, "evidence": []})
    assert code == 1
