from evidence_trust.engine.calibration import CalibrationAnalysis, CalibrationDataPoint
from evidence_trust.engine.confidence import BatchResult, ConfidenceEngine, PersonaConfidence
from evidence_trust.engine.quality import QualityAssessment, QualityEngine

__all__ = [
    "BatchResult",
    "CalibrationAnalysis",
    "CalibrationDataPoint",
    "ConfidenceEngine",
    "PersonaConfidence",
    "QualityAssessment",
    "QualityEngine",
]
