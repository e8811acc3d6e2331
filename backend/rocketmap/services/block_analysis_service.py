"""Block critique scoring and persistence.

Rules:
  - confidence: 0.7 when the block has more than 20 characters of content
    and the critique found both assumptions and risks; 0.4 with content but
    no such depth; 0.2 otherwise
  - risk: 0.15 per listed risk, capped at 1.0
  - the critique and both scores are stored on the block (if it exists)
  - identified assumptions are stored as ``untested`` AI product
    assumptions, linked to the blocks they affect

Everything is written in one commit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..models.canvas import Block, Canvas
from ..schemas.assumption_schema import AssumptionRecord
from ..schemas.block_analysis_schema import BlockAnalysis, StoredBlockAnalysis
from .assumption_service import build_assumption_row, severity_from_risk_level, to_assumption_record

logger = logging.getLogger(__name__)

_SUBSTANTIAL_CONTENT_CHARS = 20
_RISK_PER_ITEM = 0.15


def analysis_content(block: Optional[Block]) -> str:
    """Both canvas variants of a block, BMC first."""
    if block is None:
        return ""
    return f"{block.content_bmc or ''}\n{block.content_lean or ''}".strip()


def score_block_analysis(content: str, analysis: BlockAnalysis) -> Tuple[float, float]:
    """Return ``(confidence_score, risk_score)``, both in 0-1."""
    if len(content) > _SUBSTANTIAL_CONTENT_CHARS:
        deep = bool(analysis.assumptions) and bool(analysis.risks)
        confidence = 0.7 if deep else 0.4
    else:
        confidence = 0.2
    risk = min(1.0, round(len(analysis.risks) * _RISK_PER_ITEM, 2))
    return confidence, risk


def save_block_analysis(
    db: Session,
    canvas: Canvas,
    blocks: Dict[str, Block],
    block_type: str,
    analysis: BlockAnalysis,
) -> Tuple[StoredBlockAnalysis, float, float, List[AssumptionRecord]]:
    block = blocks.get(block_type)
    content = analysis_content(block)
    confidence, risk = score_block_analysis(content, analysis)
    stored = StoredBlockAnalysis(
        draft=analysis.draft,
        assumptions=analysis.assumptions,
        risks=analysis.risks,
        questions=analysis.questions,
        generated_at=datetime.utcnow(),
    )

    if block is not None:
        block.ai_analysis_json = stored.model_dump_json()
        block.confidence_score = confidence
        block.risk_score = risk
    else:
        logger.warning("No %s block on canvas %s; analysis not stored on a block", block_type, canvas.id)

    rows = [
        build_assumption_row(
            canvas,
            blocks,
            statement=item.statement.strip(),
            category="product",
            risk_level=item.risk_level,
            severity_score=severity_from_risk_level(item.risk_level),
            block_types=item.affected_blocks,
            segment_ids=[],
            source="ai",
        )
        for item in analysis.identified_assumptions
    ]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)

    logger.info(
        "Stored %s analysis for canvas %s (confidence=%.2f, risk=%.2f, %d assumptions)",
        block_type, canvas.id, confidence, risk, len(rows),
    )
    return stored, confidence, risk, [to_assumption_record(row) for row in rows]
