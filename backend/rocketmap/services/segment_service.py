"""Customer segment persistence and block ↔ segment links.

Segments belong to one canvas. Linking is idempotent: linking a segment
that is already attached to a block is a no-op. Deleting a segment drops
its block links with it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..constants import SEGMENT_COLORS, SEGMENT_QUERY_LIMIT
from ..models.canvas import Block, Canvas
from ..models.segment import Segment
from ..schemas.segment_schema import SegmentCreate, SegmentRecord, SegmentUpdate

logger = logging.getLogger(__name__)


def to_segment_record(row: Segment) -> SegmentRecord:
    return SegmentRecord(
        id=str(row.id),
        canvas_id=str(row.canvas_id),
        name=row.name,
        description=row.description or "",
        early_adopter_flag=bool(row.early_adopter_flag),
        priority_score=row.priority_score if row.priority_score is not None else 50,
        demographics=row.demographics or "",
        psychographics=row.psychographics or "",
        behavioral=row.behavioral or "",
        geographic=row.geographic or "",
        estimated_size=row.estimated_size or "",
        color_hex=row.color_hex,
        block_types=[b.block_type for b in row.blocks],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def list_segments(db: Session, canvas: Canvas) -> List[SegmentRecord]:
    """Highest priority first, capped at ``SEGMENT_QUERY_LIMIT``."""
    rows = (
        db.query(Segment)
        .filter(Segment.canvas_id == str(canvas.id))
        .order_by(Segment.priority_score.desc(), Segment.created_at.asc())
        .limit(SEGMENT_QUERY_LIMIT)
        .all()
    )
    return [to_segment_record(r) for r in rows]


def get_segment_row(db: Session, canvas: Canvas, segment_id) -> Optional[Segment]:
    return (
        db.query(Segment)
        .filter(Segment.id == str(segment_id), Segment.canvas_id == str(canvas.id))
        .first()
    )


def next_segment_color(db: Session, canvas: Canvas) -> str:
    existing = db.query(Segment).filter(Segment.canvas_id == str(canvas.id)).count()
    return SEGMENT_COLORS[existing % len(SEGMENT_COLORS)]


def create_segment(db: Session, canvas: Canvas, payload: SegmentCreate) -> SegmentRecord:
    row = Segment(
        canvas_id=canvas.id,
        name=payload.name,
        description=payload.description,
        early_adopter_flag=payload.early_adopter_flag,
        priority_score=payload.priority_score,
        demographics=payload.demographics,
        psychographics=payload.psychographics,
        behavioral=payload.behavioral,
        geographic=payload.geographic,
        estimated_size=payload.estimated_size,
        color_hex=payload.color_hex or next_segment_color(db, canvas),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return to_segment_record(row)


def update_segment(db: Session, row: Segment, payload: SegmentUpdate) -> SegmentRecord:
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(row, field, value)
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return to_segment_record(row)


def delete_segment(db: Session, row: Segment) -> None:
    db.delete(row)
    db.commit()


def link_segment(db: Session, block: Block, segment: Segment) -> Tuple[Block, bool]:
    """Attach ``segment`` to ``block``. Returns ``(block, created)``."""
    if any(str(s.id) == str(segment.id) for s in block.segments):
        return block, False
    block.segments.append(segment)
    db.commit()
    db.refresh(block)
    logger.info("Linked segment %s to %s block %s", segment.id, block.block_type, block.id)
    return block, True


def unlink_segment(db: Session, block: Block, segment_id) -> bool:
    """Detach a segment from ``block``. Returns False when it was not linked."""
    for segment in list(block.segments):
        if str(segment.id) == str(segment_id):
            block.segments.remove(segment)
            db.commit()
            return True
    return False
