"""Canvas persistence: slugs, creation, duplication, block upserts and the
viability record."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..constants import DEFAULT_SLUG
from ..models.canvas import Block, Canvas
from ..schemas.canvas_schema import BlockContentInput, CanvasUpdate
from ..schemas.viability_schema import ViabilityData
from .viability_engine import block_text

logger = logging.getLogger(__name__)


def slugify(title: str) -> str:
    """URL-friendly slug: lowercase, hyphenated, ``[a-z0-9-]`` only."""
    slug = title.lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug or DEFAULT_SLUG


def generate_slug(db: Session, title: str, user_id) -> str:
    """Slug unique among the owner's canvases.

    Collisions are resolved by probing ``slug-2``, ``slug-3``, ... If the
    canvases table does not exist yet, the current candidate is used.
    """
    base = slugify(title)
    candidate = base
    counter = 2

    while True:
        try:
            taken = (
                db.query(Canvas.id)
                .filter(Canvas.user_id == str(user_id), Canvas.slug == candidate)
                .first()
            )
        except OperationalError as exc:
            logger.warning("Slug probe failed (canvases table missing?) — using '%s': %s", candidate, exc)
            db.rollback()
            break

        if taken is None:
            break

        candidate = f"{base}-{counter}"
        counter += 1

    return candidate


def create_canvas(
    db: Session,
    *,
    user_id,
    title: str,
    description: str = "",
    blocks: Optional[Mapping[str, BlockContentInput]] = None,
) -> Canvas:
    """Persist a new private canvas, optionally with initial block content."""
    canvas = Canvas(
        user_id=user_id,
        title=title.strip(),
        slug=generate_slug(db, title, user_id),
        description=description or "",
        is_public=False,
    )
    for block_type, content in (blocks or {}).items():
        canvas.blocks.append(
            Block(
                block_type=block_type,
                content_bmc=content.content_bmc,
                content_lean=content.content_lean,
            )
        )
    db.add(canvas)
    db.commit()
    db.refresh(canvas)
    return canvas


def duplicate_canvas(db: Session, source: Canvas) -> Canvas:
    """Copy title (suffixed), description and blocks into a new private canvas.

    Assumptions, experiments and the viability record are not copied.
    """
    title = f"{source.title} (Copy)"
    copy = Canvas(
        user_id=source.user_id,
        title=title,
        slug=generate_slug(db, title, source.user_id),
        description=source.description or "",
        is_public=False,
    )
    for block in source.blocks:
        copy.blocks.append(
            Block(
                block_type=block.block_type,
                content_bmc=block.content_bmc,
                content_lean=block.content_lean,
            )
        )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def update_canvas(db: Session, canvas: Canvas, payload: CanvasUpdate) -> Canvas:
    updates = payload.model_dump(exclude_unset=True)
    if "title" in updates and updates["title"] is not None:
        canvas.title = updates["title"].strip()
    if "description" in updates and updates["description"] is not None:
        canvas.description = updates["description"]
    if "is_public" in updates and updates["is_public"] is not None:
        canvas.is_public = updates["is_public"]
    canvas.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(canvas)
    return canvas


def upsert_block(db: Session, canvas: Canvas, block_type: str, content: BlockContentInput) -> Block:
    """Create the block for ``block_type`` or overwrite its content."""
    block = (
        db.query(Block)
        .filter(Block.canvas_id == str(canvas.id), Block.block_type == block_type)
        .first()
    )
    if block is None:
        block = Block(canvas_id=canvas.id, block_type=block_type)
        db.add(block)

    block.content_bmc = content.content_bmc
    block.content_lean = content.content_lean
    block.updated_at = datetime.utcnow()
    canvas.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(block)
    return block


def get_blocks(db: Session, canvas: Canvas) -> List[Block]:
    return db.query(Block).filter(Block.canvas_id == str(canvas.id)).all()


def blocks_by_type(db: Session, canvas: Canvas) -> Dict[str, Block]:
    """Block type → Block for one canvas."""
    return {b.block_type: b for b in get_blocks(db, canvas)}


def block_texts(blocks: List[Block]) -> Dict[str, str]:
    return {b.block_type: block_text(b) for b in blocks}


# ── Viability record ─────────────────────────────────────────────────────

def save_viability(db: Session, canvas: Canvas, data: ViabilityData) -> None:
    """Replace the canvas's viability record in a single commit."""
    canvas.viability_score = data.score
    canvas.viability_data_json = data.model_dump_json()
    canvas.viability_calculated_at = data.calculated_at
    db.commit()
    logger.info("Persisted viability score=%d for canvas %s", data.score, canvas.id)


def load_viability(canvas: Canvas) -> Optional[ViabilityData]:
    """Stored viability record, or None when never calculated.

    Raises ValueError if the stored JSON is corrupted.
    """
    if not canvas.viability_data_json:
        return None
    try:
        return ViabilityData(**json.loads(canvas.viability_data_json))
    except (json.JSONDecodeError, TypeError) as exc:
        raise ValueError(f"Stored viability data for canvas {canvas.id} is corrupted") from exc
