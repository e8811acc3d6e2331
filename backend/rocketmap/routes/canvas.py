"""Canvas routes — create, read, update, duplicate canvases and upsert blocks.

Endpoints:
  POST   /canvas/                        — Create a canvas (unique slug per owner)
  GET    /canvas/                        — List the current user's canvases
  GET    /canvas/{canvas_id}             — Canvas with blocks, block risk and viability
  PATCH  /canvas/{canvas_id}             — Update title / description / visibility
  DELETE /canvas/{canvas_id}             — Delete canvas and everything under it
  POST   /canvas/{canvas_id}/duplicate   — Copy canvas and its blocks
  PUT    /canvas/{canvas_id}/blocks      — Create or overwrite one block
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import BLOCK_TYPES
from ..database import get_db
from ..models.canvas import Block, Canvas
from ..models.user import User
from ..schemas.block_analysis_schema import StoredBlockAnalysis
from ..schemas.canvas_schema import (
    BlockRecord,
    BlockUpsert,
    CanvasCreate,
    CanvasCreatedResponse,
    CanvasListResponse,
    CanvasRecord,
    CanvasSummary,
    CanvasUpdate,
)
from ..schemas.risk_schema import RiskMetrics
from ..services.assumption_service import list_assumptions
from ..services.auth_dependency import get_current_user, get_owned_canvas
from ..services.canvas_service import (
    create_canvas,
    duplicate_canvas,
    load_viability,
    update_canvas,
    upsert_block,
)
from ..services.risk_engine import build_risk_heatmap, get_risk_border_tier

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/canvas",
    tags=["Canvas"],
)


# ── Helpers ──────────────────────────────────────────────────────────────

def _stored_analysis(block: Block) -> Optional[StoredBlockAnalysis]:
    if not block.ai_analysis_json:
        return None
    try:
        return StoredBlockAnalysis.model_validate_json(block.ai_analysis_json)
    except ValidationError:
        logger.error("Stored analysis for block %s is corrupted; omitting it", block.id)
        return None


def _block_to_record(block: Block, risk: RiskMetrics) -> BlockRecord:
    return BlockRecord(
        id=str(block.id),
        block_type=block.block_type,
        content_bmc=block.content_bmc or "",
        content_lean=block.content_lean or "",
        risk=risk,
        state=get_risk_border_tier(risk.risk_score, risk.confidence_score),
        segment_ids=[str(s.id) for s in block.segments],
        ai_analysis=_stored_analysis(block),
    )


def _canvas_to_summary(canvas: Canvas) -> CanvasSummary:
    return CanvasSummary(
        id=str(canvas.id),
        title=canvas.title,
        slug=canvas.slug,
        description=canvas.description or "",
        is_public=bool(canvas.is_public),
        viability_score=canvas.viability_score,
        created_at=canvas.created_at,
        updated_at=canvas.updated_at,
    )


def _canvas_to_record(db: Session, canvas: Canvas) -> CanvasRecord:
    """Full canvas view; blocks in canonical order, each with its risk metrics."""
    heatmap: Dict[str, RiskMetrics] = build_risk_heatmap(list_assumptions(db, canvas))
    order = {bt: i for i, bt in enumerate(BLOCK_TYPES)}
    blocks: List[BlockRecord] = [
        _block_to_record(b, heatmap[b.block_type])
        for b in sorted(canvas.blocks, key=lambda b: order.get(b.block_type, len(order)))
    ]

    try:
        viability = load_viability(canvas)
    except ValueError as exc:
        logger.warning("Ignoring corrupted viability record: %s", exc)
        viability = None

    summary = _canvas_to_summary(canvas)
    return CanvasRecord(**summary.model_dump(), blocks=blocks, viability=viability)


# ── Routes ───────────────────────────────────────────────────────────────

@router.post(
    "/",
    response_model=CanvasCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a Canvas",
    response_description="The new canvas ID and its slug",
)
def create_canvas_route(
    payload: CanvasCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CanvasCreatedResponse:
    """Create a private canvas, optionally seeding block content."""
    try:
        canvas = create_canvas(
            db,
            user_id=current_user.id,
            title=payload.title,
            description=payload.description,
            blocks=payload.blocks,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Canvas creation failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create canvas",
        ) from exc

    print(f"🗺️  [CANVAS] Created canvas {canvas.id} (slug={canvas.slug})")
    return CanvasCreatedResponse(id=str(canvas.id), slug=canvas.slug)


@router.get(
    "/",
    response_model=CanvasListResponse,
    summary="List canvases for current user",
)
def list_canvases(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CanvasListResponse:
    records = (
        db.query(Canvas)
        .filter(Canvas.user_id == str(current_user.id))
        .order_by(Canvas.created_at.desc())
        .all()
    )
    return CanvasListResponse(records=[_canvas_to_summary(c) for c in records])


@router.get(
    "/{canvas_id}",
    response_model=CanvasRecord,
    summary="Get a Canvas",
    response_description="Canvas with blocks, per-block risk and stored viability",
)
def get_canvas(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> CanvasRecord:
    return _canvas_to_record(db, canvas)


@router.patch(
    "/{canvas_id}",
    response_model=CanvasSummary,
    summary="Update canvas metadata",
)
def patch_canvas(
    payload: CanvasUpdate,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> CanvasSummary:
    return _canvas_to_summary(update_canvas(db, canvas, payload))


@router.delete(
    "/{canvas_id}",
    summary="Delete a canvas",
)
def delete_canvas(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> dict:
    db.delete(canvas)
    db.commit()
    return {"success": True}


@router.post(
    "/{canvas_id}/duplicate",
    response_model=CanvasCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate a canvas",
)
def duplicate_canvas_route(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> CanvasCreatedResponse:
    try:
        copy = duplicate_canvas(db, canvas)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Canvas duplication failed for %s", canvas.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to duplicate canvas",
        ) from exc
    return CanvasCreatedResponse(id=str(copy.id), slug=copy.slug)


@router.put(
    "/{canvas_id}/blocks",
    response_model=BlockRecord,
    summary="Create or update a block",
)
def put_block(
    payload: BlockUpsert,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> BlockRecord:
    block = upsert_block(db, canvas, payload.block_type, payload)
    heatmap = build_risk_heatmap(list_assumptions(db, canvas))
    return _block_to_record(block, heatmap[block.block_type])
