"""Pydantic schemas for validation experiments."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..constants import EXPERIMENT_ESTIMATE_MAX_CHARS

ExperimentType = Literal["survey", "interview", "mvp", "ab_test", "research", "other"]
ExperimentStatus = Literal["planned", "completed"]
ExperimentResult = Literal["supports", "contradicts", "inconclusive"]


def _truncate_estimate(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    text = str(v).strip()
    return text[:EXPERIMENT_ESTIMATE_MAX_CHARS] or None


class ExperimentCreate(BaseModel):
    type: ExperimentType
    description: str = Field(..., min_length=1)
    success_criteria: str = Field(..., min_length=1)
    cost_estimate: Optional[str] = None
    duration_estimate: Optional[str] = None

    @field_validator("cost_estimate", "duration_estimate")
    @classmethod
    def clip_estimates(cls, v: Optional[str]) -> Optional[str]:
        return _truncate_estimate(v)


class ExperimentUpdate(BaseModel):
    """Partial update. ``status="completed"`` must carry a ``result``."""

    status: Optional[ExperimentStatus] = None
    result: Optional[ExperimentResult] = None
    evidence: Optional[str] = None
    source_url: Optional[str] = Field(default=None, max_length=1024)


class ExperimentRecord(BaseModel):
    """Single experiment — returned by all experiment endpoints."""

    id: str
    assumption_id: str
    type: ExperimentType
    description: str
    success_criteria: str
    status: ExperimentStatus
    result: Optional[ExperimentResult] = None
    evidence: str = ""
    source_url: Optional[str] = None
    cost_estimate: Optional[str] = None
    duration_estimate: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ExperimentListResponse(BaseModel):
    records: List[ExperimentRecord] = Field(default_factory=list)


class ExperimentSuggestion(BaseModel):
    """Cheapest/fastest experiment proposed by the LLM for one assumption."""

    type: ExperimentType
    description: str = Field(..., description="Step-by-step instructions for running the experiment")
    success_criteria: str = Field(..., description="Specific, measurable validation threshold")
    cost_estimate: str = Field(..., description='Short cost estimate, e.g. "$0", "$50"')
    duration_estimate: str = Field(..., description='Short duration, e.g. "5 min", "1 week"')
    reasoning: str

    @field_validator("cost_estimate", "duration_estimate")
    @classmethod
    def clip_estimates(cls, v: str) -> str:
        return _truncate_estimate(v) or ""
