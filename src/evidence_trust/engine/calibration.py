"""Calibration of predicted confidence against human judgments."""
from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from evidence_trust.utils.errors import CalibrationError
from evidence_trust.utils.text import mean, variance
from evidence_trust.utils.timeutil import utcnow

BIN_COUNT = 10


@dataclass(frozen=True)
class CalibrationDataPoint:
    claim_text: str
    predicted_confidence: float
    human_judgment: float
    evidence_count: int = 0
    source_quality: float = 0.0
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class CalibrationBin:
    predicted_bin: float  # bin centre
    predicted_mean: float
    actual_mean: float
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "predicted_bin": round(self.predicted_bin, 2),
            "predicted_mean": round(self.predicted_mean, 3),
            "actual_mean": round(self.actual_mean, 3),
            "count": self.count,
        }


@dataclass
class CalibrationAnalysis:
    mean_absolute_error: float
    root_mean_square_error: float
    correlation: float
    calibration_curve: list[CalibrationBin]
    reliability: float
    resolution: float
    sample_size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean_absolute_error": round(self.mean_absolute_error, 4),
            "root_mean_square_error": round(self.root_mean_square_error, 4),
            "correlation": round(self.correlation, 4),
            "calibration_curve": [b.to_dict() for b in self.calibration_curve],
            "reliability": round(self.reliability, 4),
            "resolution": round(self.resolution, 4),
            "sample_size": self.sample_size,
        }


class CalibrationLog:
    """Append-only record of (predicted, human judgment) pairs."""

    def __init__(self):
        self._points: list[CalibrationDataPoint] = []
        self._lock = threading.Lock()

    def add(self, point: CalibrationDataPoint) -> None:
        with self._lock:
            self._points.append(point)

    def points(self) -> tuple[CalibrationDataPoint, ...]:
        with self._lock:
            return tuple(self._points)

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)


def pearson(xs: list[float], ys: list[float]) -> float:
    """Pearson correlation; 0 when either series has no variance."""
    mx, my = mean(xs), mean(ys)
    num = sum((x - mx) * (y - my) for x, y in zip(xs, ys))
    den = math.sqrt(sum((x - mx) ** 2 for x in xs) * sum((y - my) ** 2 for y in ys))
    return num / den if den else 0.0


def _bin_index(value: float) -> int:
    # Bins are [i/10, (i+1)/10); a prediction of exactly 1.0 joins the last bin.
    return min(BIN_COUNT - 1, max(0, int(value * BIN_COUNT)))


def calibration_curve(predicted: list[float], actual: list[float]) -> list[CalibrationBin]:
    grouped: dict[int, list[tuple[float, float]]] = {}
    for p, a in zip(predicted, actual):
        grouped.setdefault(_bin_index(p), []).append((p, a))
    curve = []
    for i in sorted(grouped):
        pairs = grouped[i]
        curve.append(CalibrationBin(
            predicted_bin=(i + 0.5) / BIN_COUNT,
            predicted_mean=mean([p for p, _ in pairs]),
            actual_mean=mean([a for _, a in pairs]),
            count=len(pairs),
        ))
    return curve


def analyze_calibration(points: tuple[CalibrationDataPoint, ...] | list[CalibrationDataPoint]) -> CalibrationAnalysis:
    if not points:
        raise CalibrationError()
    predicted = [p.predicted_confidence for p in points]
    actual = [p.human_judgment for p in points]
    errors = [p - a for p, a in zip(predicted, actual)]
    curve = calibration_curve(predicted, actual)
    total = sum(b.count for b in curve)
    deviation = sum((b.count / total) * (b.predicted_bin - b.actual_mean) ** 2 for b in curve)
    return CalibrationAnalysis(
        mean_absolute_error=mean([abs(e) for e in errors]),
        root_mean_square_error=math.sqrt(mean([e * e for e in errors])),
        correlation=pearson(predicted, actual),
        calibration_curve=curve,
        reliability=1 - deviation,
        resolution=variance(actual),
        sample_size=len(points),
    )
