"""Block critique route.

Endpoints:
  POST /canvas/{canvas_id}/blocks/{block_type}/analyze — LLM critique of one block
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.canvas import Canvas
from ..schemas.block_analysis_schema import BlockAnalysisResponse
from ..schemas.canvas_schema import BlockType
from ..services.auth_dependency import get_owned_canvas
from ..services.block_analysis_service import analysis_content, save_block_analysis
from ..services.canvas_ai import CanvasAIError, analyze_block
from ..services.canvas_service import block_texts, blocks_by_type

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/canvas/{canvas_id}/blocks",
    tags=["Blocks"],
)


@router.post(
    "/{block_type}/analyze",
    response_model=BlockAnalysisResponse,
    summary="Critique one block via LLM",
    response_description="Stored critique, block scores and any assumptions it created",
)
async def post_block_analysis(
    block_type: BlockType,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> BlockAnalysisResponse:
    """Ask the LLM to critique one block and store the result on it.

    Hidden assumptions it identifies are persisted as ``ai``-sourced.
    An empty or missing block is still analyzed.
    """
    blocks = blocks_by_type(db, canvas)
    content = analysis_content(blocks.get(block_type))

    try:
        analysis = await analyze_block(block_type, content, block_texts(list(blocks.values())))
    except (CanvasAIError, EnvironmentError) as exc:
        logger.error("Block analysis failed for %s on canvas %s: %s", block_type, canvas.id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze block",
        ) from exc

    try:
        stored, confidence, risk, created = save_block_analysis(db, canvas, blocks, block_type, analysis)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Persisting block analysis failed for canvas %s", canvas.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze block",
        ) from exc

    print(f"✅ [BLOCKS] Stored {block_type} analysis for canvas {canvas.id} "
          f"({len(created)} assumptions created)")
    return BlockAnalysisResponse(
        block_type=block_type,
        analysis=stored,
        confidence_score=confidence,
        risk_score=risk,
        assumptions_created=created,
    )
