"""Pydantic schemas for customer segments and their block links."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class SegmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    early_adopter_flag: bool = False
    priority_score: int = Field(default=50, ge=0, le=100)
    demographics: str = ""
    psychographics: str = ""
    behavioral: str = ""
    geographic: str = ""
    estimated_size: str = Field(default="", max_length=255)
    color_hex: Optional[str] = Field(default=None, pattern=_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("name is required")
        return stripped


class SegmentUpdate(BaseModel):
    """Partial update. The assigned color is fixed after creation."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    early_adopter_flag: Optional[bool] = None
    priority_score: Optional[int] = Field(default=None, ge=0, le=100)
    demographics: Optional[str] = None
    psychographics: Optional[str] = None
    behavioral: Optional[str] = None
    geographic: Optional[str] = None
    estimated_size: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        if not stripped:
            raise ValueError("name is required")
        return stripped


class SegmentRecord(BaseModel):
    id: str
    canvas_id: str
    name: str
    description: str = ""
    early_adopter_flag: bool = False
    priority_score: int = 50
    demographics: str = ""
    psychographics: str = ""
    behavioral: str = ""
    geographic: str = ""
    estimated_size: str = ""
    color_hex: str
    block_types: List[str] = Field(default_factory=list, description="Blocks this segment is linked to")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SegmentListResponse(BaseModel):
    records: List[SegmentRecord]


class SegmentLinkRequest(BaseModel):
    segment_id: str = Field(..., min_length=1)


class SegmentLinkResponse(BaseModel):
    block_type: str
    segment_id: str
    created: bool
