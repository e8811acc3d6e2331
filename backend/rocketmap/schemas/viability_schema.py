from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field


class ViabilityBreakdown(BaseModel):
    """Three independently scored dimensions, each 0-100."""

    assumptions: float = Field(..., ge=0.0, le=100.0, description="Assumption validity sub-score")
    market: float = Field(..., ge=0.0, le=100.0, description="Market sub-score")
    unmet_need: float = Field(..., ge=0.0, le=100.0, description="Unmet need sub-score")


class ValidatedAssumption(BaseModel):
    block_type: str
    assumption: str
    status: Literal["validated", "invalidated", "untested"]
    evidence: str


class ViabilityAssessment(BaseModel):
    """Strict contract for the structured scorer's response.

    Any response that does not parse into this model is treated as a
    scorer failure.
    """

    score: float = Field(..., ge=0.0, le=100.0, description="Scorer's own overall estimate (not persisted)")
    breakdown: ViabilityBreakdown
    reasoning: str
    validated_assumptions: List[ValidatedAssumption] = Field(default_factory=list)


class ViabilityData(BaseModel):
    """Viability record persisted on the canvas. Fully replaced on recalculation."""

    score: int = Field(
        ...,
        ge=0,
        le=100,
        description="round(0.4*assumptions + 0.3*market + 0.3*unmet_need)",
    )
    breakdown: ViabilityBreakdown
    reasoning: str
    validated_assumptions: List[ValidatedAssumption] = Field(default_factory=list)
    calculated_at: datetime = Field(..., description="Moment of aggregation")


class ViabilityResponse(BaseModel):
    viability: ViabilityData
