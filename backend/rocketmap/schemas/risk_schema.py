from typing import List, Literal

from pydantic import BaseModel, Field

BorderTier = Literal["critical", "warning", "healthy", "neutral"]


class RiskMetrics(BaseModel):
    """Per-block risk summary derived from a canvas's assumptions.

    Produced by the Risk Engine. Never persisted — always recomputed
    from the current assumption snapshot.
    """

    risk_score: int = Field(
        ...,
        ge=0,
        le=100,
        description="Sum of status/risk-level penalties, clamped to 100",
    )
    confidence_score: int = Field(
        ...,
        ge=0,
        le=100,
        description="Mean confidence of linked assumptions, rounded half-up (0 if none)",
    )
    untested_high_risk: int = Field(..., ge=0)
    untested_medium_risk: int = Field(..., ge=0)
    untested_low_risk: int = Field(..., ge=0)
    top_risks: List[str] = Field(
        default_factory=list,
        max_length=3,
        description="Statements of the first three untested high-risk assumptions",
    )
