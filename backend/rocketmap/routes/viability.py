"""Viability routes.

  POST /canvas/{canvas_id}/viability — Score the canvas and persist the result
  GET  /canvas/{canvas_id}/viability — Last persisted result (404 if never scored)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.canvas import Canvas
from ..schemas.viability_schema import ViabilityResponse
from ..services.auth_dependency import get_owned_canvas
from ..services.canvas_ai import score_canvas_viability
from ..services.canvas_service import get_blocks, load_viability, save_viability
from ..services.viability_engine import (
    ViabilityPreconditionError,
    ViabilityScoringError,
    calculate_viability,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/canvas",
    tags=["Viability"],
)


@router.post(
    "/{canvas_id}/viability",
    response_model=ViabilityResponse,
    summary="Calculate canvas viability",
    response_description="Overall score, sub-score breakdown and reasoning",
)
async def post_viability(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> ViabilityResponse:
    """Score the canvas and overwrite its stored viability record.

    400 when blocks are missing or too short (the scorer is not called);
    500 when the scorer fails or the result cannot be stored.
    """
    try:
        data = await calculate_viability(
            get_blocks(db, canvas),
            scorer=score_canvas_viability,
            persist=lambda d: save_viability(db, canvas, d),
        )
    except ViabilityPreconditionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ViabilityScoringError as exc:
        logger.error("Viability scoring failed for canvas %s: %s", canvas.id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate viability",
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Persisting viability failed for canvas %s", canvas.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to calculate viability",
        ) from exc

    return ViabilityResponse(viability=data)


@router.get(
    "/{canvas_id}/viability",
    response_model=ViabilityResponse,
    summary="Get stored viability",
)
def get_viability(canvas: Canvas = Depends(get_owned_canvas)) -> ViabilityResponse:
    try:
        data = load_viability(canvas)
    except ValueError as exc:
        logger.error("%s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stored viability data is unreadable",
        ) from exc

    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Viability has not been calculated for this canvas",
        )
    return ViabilityResponse(viability=data)
