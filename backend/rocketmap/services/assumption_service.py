"""Assumption data access.

Every ORM row leaves this module as a clean ``AssumptionRecord``: block
tags are flattened to block-type strings, JSON columns are decoded, and
missing values fall back to their defaults. The risk engine and the
routes never see raw rows.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..constants import (
    ASSUMPTION_QUERY_LIMIT,
    BLOCK_TYPES_SET,
    RISK_LEVEL_TO_SEVERITY,
    SEVERITY_HIGH_THRESHOLD,
    SEVERITY_MEDIUM_THRESHOLD,
)
from ..models.assumption import Assumption
from ..models.canvas import Block, Canvas
from ..schemas.assumption_schema import (
    AssumptionCreate,
    AssumptionRecord,
    AssumptionUpdate,
    ExtractedAssumption,
)
from .canvas_service import blocks_by_type

logger = logging.getLogger(__name__)


# ── Severity ↔ risk level (creation time only) ───────────────────────────

def risk_level_from_severity(severity: int) -> str:
    if severity >= SEVERITY_HIGH_THRESHOLD:
        return "high"
    if severity >= SEVERITY_MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def severity_from_risk_level(risk_level: str) -> int:
    return RISK_LEVEL_TO_SEVERITY.get(risk_level, RISK_LEVEL_TO_SEVERITY["medium"])


# ── Normalization ────────────────────────────────────────────────────────

def _block_type_of(tag: Any) -> Optional[str]:
    """Block type from a bare string, a mapping, or an object with ``block_type``."""
    if isinstance(tag, str):
        value = tag
    elif isinstance(tag, dict):
        value = tag.get("block_type") or tag.get("blockType")
    else:
        value = getattr(tag, "block_type", None)
    return value if value in BLOCK_TYPES_SET else None


def normalize_block_types(tags: Optional[Iterable[Any]]) -> List[str]:
    """Known block types in first-seen order, duplicates and unknowns dropped."""
    seen: List[str] = []
    for tag in tags or []:
        block_type = _block_type_of(tag)
        if block_type and block_type not in seen:
            seen.append(block_type)
    return seen


def _decode_id_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed segment id list: %r", raw[:80])
        return []
    return [str(v) for v in value] if isinstance(value, list) else []


def to_assumption_record(row: Assumption) -> AssumptionRecord:
    """Normalize an ORM row into the single ``AssumptionRecord`` shape."""
    return AssumptionRecord(
        id=str(row.id),
        canvas_id=str(row.canvas_id),
        statement=row.assumption_text or "",
        category=row.category or "product",
        status=row.status or "untested",
        risk_level=row.risk_level or "medium",
        severity_score=row.severity_score if row.severity_score is not None else 0,
        confidence_score=row.confidence_score if row.confidence_score is not None else 0.0,
        source=row.source or "user",
        block_types=normalize_block_types(row.blocks),
        segment_ids=_decode_id_list(row.segment_ids_json),
        suggested_experiment=row.suggested_experiment,
        suggested_experiment_duration=row.suggested_experiment_duration,
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_tested_at=row.last_tested_at,
    )


# ── Queries ──────────────────────────────────────────────────────────────

def list_assumption_rows(db: Session, canvas: Canvas) -> List[Assumption]:
    return (
        db.query(Assumption)
        .filter(Assumption.canvas_id == str(canvas.id))
        .order_by(Assumption.created_at.asc())
        .limit(ASSUMPTION_QUERY_LIMIT)
        .all()
    )


def list_assumptions(db: Session, canvas: Canvas) -> List[AssumptionRecord]:
    """All assumptions of a canvas (capped), normalized, in creation order."""
    return [to_assumption_record(row) for row in list_assumption_rows(db, canvas)]


def get_assumption_row(db: Session, canvas: Canvas, assumption_id) -> Optional[Assumption]:
    return (
        db.query(Assumption)
        .filter(Assumption.id == str(assumption_id), Assumption.canvas_id == str(canvas.id))
        .first()
    )


# ── Writes ───────────────────────────────────────────────────────────────

def build_assumption_row(
    canvas: Canvas,
    blocks: Dict[str, Block],
    *,
    statement: str,
    category: str,
    risk_level: str,
    severity_score: int,
    block_types: Iterable[str],
    segment_ids: Iterable[str],
    source: str,
) -> Assumption:
    now = datetime.utcnow()
    return Assumption(
        canvas_id=canvas.id,
        assumption_text=statement,
        category=category,
        status="untested",
        risk_level=risk_level,
        severity_score=severity_score,
        confidence_score=0.0,
        source=source,
        segment_ids_json=json.dumps([str(s) for s in segment_ids]),
        created_at=now,
        updated_at=now,
        # Block types without a block on this canvas are dropped
        blocks=[blocks[bt] for bt in normalize_block_types(block_types) if bt in blocks],
    )


def create_assumption(db: Session, canvas: Canvas, payload: AssumptionCreate) -> AssumptionRecord:
    """Persist a manual assumption as ``untested``.

    Whichever of risk level / severity is missing is derived from the other.
    """
    if payload.risk_level is not None:
        risk_level = payload.risk_level
        severity = payload.severity_score if payload.severity_score is not None else severity_from_risk_level(risk_level)
    else:
        severity = payload.severity_score
        risk_level = risk_level_from_severity(severity)

    row = build_assumption_row(
        canvas,
        blocks_by_type(db, canvas),
        statement=payload.statement,
        category=payload.category,
        risk_level=risk_level,
        severity_score=severity,
        block_types=payload.block_types,
        segment_ids=payload.segment_ids,
        source=payload.source,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return to_assumption_record(row)


def create_extracted_assumptions(
    db: Session,
    canvas: Canvas,
    extracted: Iterable[ExtractedAssumption],
) -> List[AssumptionRecord]:
    """Persist LLM-extracted assumptions in one transaction, risk level from severity."""
    blocks = blocks_by_type(db, canvas)
    rows = [
        build_assumption_row(
            canvas,
            blocks,
            statement=item.statement.strip(),
            category=item.category,
            risk_level=risk_level_from_severity(item.severity_score),
            severity_score=item.severity_score,
            block_types=item.block_types,
            segment_ids=[],
            source="ai",
        )
        for item in extracted
    ]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return [to_assumption_record(row) for row in rows]


def update_assumption(db: Session, row: Assumption, payload: AssumptionUpdate) -> AssumptionRecord:
    """Apply a partial update. ``risk_level`` is written as given, never derived."""
    updates = payload.model_dump(exclude_unset=True)

    if updates.get("statement") is not None:
        row.assumption_text = updates["statement"].strip()
    for field in ("category", "status", "risk_level", "confidence_score"):
        if updates.get(field) is not None:
            setattr(row, field, updates[field])
    for field in ("suggested_experiment", "suggested_experiment_duration", "last_tested_at"):
        if field in updates:
            setattr(row, field, updates[field])
    if updates.get("segment_ids") is not None:
        row.segment_ids_json = json.dumps([str(s) for s in updates["segment_ids"]])

    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return to_assumption_record(row)


def delete_assumption(db: Session, row: Assumption) -> None:
    db.delete(row)
    db.commit()
