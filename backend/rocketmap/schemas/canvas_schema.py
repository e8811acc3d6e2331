from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .block_analysis_schema import StoredBlockAnalysis
from .risk_schema import BorderTier, RiskMetrics
from .viability_schema import ViabilityData

BlockType = Literal[
    "key_partnerships",
    "key_activities",
    "key_resources",
    "value_prop",
    "customer_relationships",
    "channels",
    "customer_segments",
    "cost_structure",
    "revenue_streams",
]


def _title_not_blank(v: str) -> str:
    stripped = v.strip()
    if not stripped:
        raise ValueError("Title is required")
    return stripped


class BlockContentInput(BaseModel):
    content_bmc: str = Field(default="", max_length=20000)
    content_lean: str = Field(default="", max_length=20000)


class BlockUpsert(BlockContentInput):
    block_type: BlockType


class CanvasCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    blocks: Dict[BlockType, BlockContentInput] = Field(
        default_factory=dict,
        description="Optional initial content keyed by block type",
    )

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _title_not_blank(v)


class CanvasUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    is_public: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _title_not_blank(v)


class CanvasCreatedResponse(BaseModel):
    id: str
    slug: str


class BlockRecord(BaseModel):
    id: str
    block_type: BlockType
    content_bmc: str = ""
    content_lean: str = ""
    risk: RiskMetrics
    state: BorderTier = Field(..., description="Border tier derived from risk and confidence")
    segment_ids: List[str] = Field(default_factory=list, description="Linked customer segments")
    ai_analysis: Optional[StoredBlockAnalysis] = None


class CanvasSummary(BaseModel):
    id: str
    title: str
    slug: str
    description: str = ""
    is_public: bool = False
    viability_score: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CanvasRecord(CanvasSummary):
    blocks: List[BlockRecord] = Field(default_factory=list)
    viability: Optional[ViabilityData] = None


class CanvasListResponse(BaseModel):
    records: List[CanvasSummary] = Field(
        default_factory=list, description="Canvases sorted by created_at DESC"
    )
