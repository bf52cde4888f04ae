"""Tests for calibration analysis."""
from __future__ import annotations

import pytest

from evidence_trust.engine.calibration import (
    CalibrationDataPoint,
    analyze_calibration,
    calibration_curve,
    pearson,
)
from evidence_trust.engine.confidence import ConfidenceEngine
from evidence_trust.utils.errors import CalibrationError


def make_points(pairs: list[tuple[float, float]]) -> list[CalibrationDataPoint]:
    return [
        CalibrationDataPoint(claim_text=f"claim {i}", predicted_confidence=p, human_judgment=a)
        for i, (p, a) in enumerate(pairs)
    ]


class TestAnalyzeCalibration:
    """Tests for analyze_calibration."""

    def test_five_points(self):
        engine = ConfidenceEngine()
        for i, (predicted, actual) in enumerate([(0.9, 1.0), (0.8, 0.7), (0.6, 0.5), (0.3, 0.4), (0.2, 0.0)]):
            engine.add_calibration_point(f"claim {i}", predicted, actual)

        analysis = engine.analyze_calibration()

        assert analysis.sample_size == 5
        assert analysis.mean_absolute_error >= 0
        assert analysis.root_mean_square_error >= 0
        assert -1 < analysis.correlation < 1
        assert analysis.calibration_curve
        assert analysis.mean_absolute_error == pytest.approx(0.12)

    def test_no_points_raises(self):
        with pytest.raises(CalibrationError):
            ConfidenceEngine().analyze_calibration()

    def test_perfect_predictions(self):
        analysis = analyze_calibration(make_points([(0.2, 0.2), (0.5, 0.5), (0.9, 0.9)]))
        assert analysis.mean_absolute_error == pytest.approx(0.0)
        assert analysis.root_mean_square_error == pytest.approx(0.0)
        assert analysis.correlation == pytest.approx(1.0)

    def test_points_are_recorded_in_order(self):
        engine = ConfidenceEngine()
        engine.add_calibration_point("first", 0.4, 1.0)
        engine.add_calibration_point("second", 0.6, 0.0)
        assert [p.claim_text for p in engine.calibration_points()] == ["first", "second"]


class TestCalibrationCurve:
    """Tests for binning."""

    def test_bins_by_tenths(self):
        curve = calibration_curve([0.12, 0.18, 0.55], [0.0, 1.0, 1.0])
        assert [b.count for b in curve] == [2, 1]
        assert curve[0].predicted_bin == pytest.approx(0.15)
        assert curve[0].actual_mean == pytest.approx(0.5)

    def test_prediction_of_one_joins_last_bin(self):
        curve = calibration_curve([0.95, 1.0], [1.0, 1.0])
        assert len(curve) == 1
        assert curve[0].predicted_bin == pytest.approx(0.95)
        assert curve[0].count == 2


class TestPearson:
    """Tests for the correlation helper."""

    def test_constant_series_is_zero(self):
        assert pearson([0.5, 0.5, 0.5], [0.1, 0.4, 0.9]) == 0.0

    def test_inverse_series(self):
        assert pearson([0.1, 0.5, 0.9], [0.9, 0.5, 0.1]) == pytest.approx(-1.0)
