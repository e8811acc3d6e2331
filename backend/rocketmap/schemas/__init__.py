# Schemas package
from .assumption_schema import AssumptionCreate, AssumptionRecord, AssumptionUpdate
from .block_analysis_schema import BlockAnalysis, BlockAnalysisResponse
from .canvas_schema import BlockUpsert, CanvasCreate, CanvasRecord, CanvasUpdate
from .experiment_schema import ExperimentCreate, ExperimentRecord, ExperimentSuggestion, ExperimentUpdate
from .risk_schema import RiskMetrics
from .segment_schema import SegmentCreate, SegmentRecord, SegmentUpdate
from .viability_schema import ViabilityAssessment, ViabilityData

__all__ = [
    "AssumptionCreate",
    "AssumptionRecord",
    "AssumptionUpdate",
    "BlockAnalysis",
    "BlockAnalysisResponse",
    "BlockUpsert",
    "CanvasCreate",
    "CanvasRecord",
    "CanvasUpdate",
    "ExperimentCreate",
    "ExperimentRecord",
    "ExperimentSuggestion",
    "ExperimentUpdate",
    "RiskMetrics",
    "SegmentCreate",
    "SegmentRecord",
    "SegmentUpdate",
    "ViabilityAssessment",
    "ViabilityData",
]
