"""Pydantic schemas for the per-block LLM critique."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from .assumption_schema import AssumptionRecord, RiskLevel


class IdentifiedAssumption(BaseModel):
    """Hidden assumption spotted while critiquing one block."""

    statement: str = Field(..., min_length=1)
    risk_level: RiskLevel
    reasoning: str = ""
    affected_blocks: List[str] = Field(default_factory=list)


class BlockAnalysis(BaseModel):
    """Contract for the block analysis prompt."""

    draft: str = Field(default="", description="Improved rewrite of the block content")
    assumptions: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    questions: List[str] = Field(default_factory=list)
    identified_assumptions: List[IdentifiedAssumption] = Field(default_factory=list)


class StoredBlockAnalysis(BaseModel):
    """What is persisted on the block as ``ai_analysis_json``."""

    draft: str = ""
    assumptions: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    questions: List[str] = Field(default_factory=list)
    generated_at: datetime


class BlockAnalysisResponse(BaseModel):
    block_type: str
    analysis: StoredBlockAnalysis
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    risk_score: float = Field(..., ge=0.0, le=1.0)
    assumptions_created: List[AssumptionRecord] = Field(default_factory=list)
