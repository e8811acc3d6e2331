"""Pydantic schemas for assumptions.

``AssumptionRecord`` is the one clean shape every service works with —
ORM rows are normalized into it at the data-access boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

Category = Literal["market", "product", "ops", "legal"]
AssumptionStatus = Literal["untested", "testing", "validated", "refuted", "inconclusive"]
RiskLevel = Literal["high", "medium", "low"]


class AssumptionRecord(BaseModel):
    """Normalized assumption — returned by all assumption endpoints."""

    id: str
    canvas_id: str
    statement: str
    category: Category = "product"
    status: AssumptionStatus = "untested"
    risk_level: RiskLevel = "medium"
    severity_score: int = Field(default=0, ge=0, le=10)
    confidence_score: float = Field(default=0.0, ge=0.0, le=100.0)
    source: Literal["ai", "user"] = "user"
    block_types: List[str] = Field(default_factory=list)
    segment_ids: List[str] = Field(default_factory=list)
    suggested_experiment: Optional[str] = None
    suggested_experiment_duration: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_tested_at: Optional[datetime] = None


class AssumptionCreate(BaseModel):
    """Manual assumption intake. Needs a risk level or a severity score."""

    statement: str = Field(..., min_length=1, max_length=2000)
    category: Category = "product"
    risk_level: Optional[RiskLevel] = None
    severity_score: Optional[int] = Field(default=None, ge=0, le=10)
    block_types: List[str] = Field(default_factory=list)
    segment_ids: List[str] = Field(default_factory=list)
    source: Literal["ai", "user"] = "user"

    @field_validator("statement")
    @classmethod
    def statement_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Assumption statement must not be blank")
        return stripped

    @model_validator(mode="after")
    def risk_level_or_severity(self) -> "AssumptionCreate":
        if self.risk_level is None and self.severity_score is None:
            raise ValueError("Either risk_level or severity_score is required")
        return self


class AssumptionUpdate(BaseModel):
    """Partial update — only fields that are present are written."""

    statement: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    category: Optional[Category] = None
    status: Optional[AssumptionStatus] = None
    risk_level: Optional[RiskLevel] = None
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    suggested_experiment: Optional[str] = None
    suggested_experiment_duration: Optional[str] = Field(default=None, max_length=64)
    last_tested_at: Optional[datetime] = None
    segment_ids: Optional[List[str]] = None


class ExtractedAssumption(BaseModel):
    """One assumption as returned by the extraction prompt."""

    statement: str = Field(..., min_length=1)
    category: Category
    severity_score: int = Field(..., ge=0, le=10, description="Impact if wrong: 0=negligible, 10=catastrophic")
    block_types: List[str] = Field(default_factory=list)


class AssumptionExtraction(BaseModel):
    reasoning: str
    assumptions: List[ExtractedAssumption] = Field(default_factory=list)


class AssumptionAnalysisResponse(BaseModel):
    reasoning: str
    assumptions: List[AssumptionRecord] = Field(default_factory=list)
