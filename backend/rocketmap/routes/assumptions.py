"""Assumption routes.

Endpoints:
  GET    /canvas/{canvas_id}/assumptions/                                   — List (max 200)
  POST   /canvas/{canvas_id}/assumptions/                                   — Create manually
  POST   /canvas/{canvas_id}/assumptions/analyze                            — Extract via LLM
  GET    /canvas/{canvas_id}/assumptions/{assumption_id}                    — Get one
  PATCH  /canvas/{canvas_id}/assumptions/{assumption_id}                    — Partial update
  DELETE /canvas/{canvas_id}/assumptions/{assumption_id}                    — Delete
  POST   /canvas/{canvas_id}/assumptions/{assumption_id}/suggest-experiment — LLM suggestion
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.assumption import Assumption
from ..models.canvas import Canvas
from ..schemas.assumption_schema import (
    AssumptionAnalysisResponse,
    AssumptionCreate,
    AssumptionRecord,
    AssumptionUpdate,
)
from ..schemas.experiment_schema import ExperimentSuggestion
from ..services.assumption_service import (
    create_assumption,
    create_extracted_assumptions,
    delete_assumption,
    list_assumptions,
    to_assumption_record,
    update_assumption,
)
from ..services.auth_dependency import get_owned_assumption, get_owned_canvas
from ..services.canvas_ai import CanvasAIError, extract_assumptions, suggest_experiment
from ..services.canvas_service import block_texts, get_blocks

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/canvas/{canvas_id}/assumptions",
    tags=["Assumptions"],
)


@router.get(
    "/",
    response_model=List[AssumptionRecord],
    summary="List assumptions for a canvas",
)
def get_assumptions(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> List[AssumptionRecord]:
    return list_assumptions(db, canvas)


@router.post(
    "/",
    response_model=AssumptionRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create an assumption",
)
def post_assumption(
    payload: AssumptionCreate,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> AssumptionRecord:
    """Create an ``untested`` assumption; risk level/severity derived if missing."""
    return create_assumption(db, canvas, payload)


@router.post(
    "/analyze",
    response_model=AssumptionAnalysisResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Extract assumptions from the canvas via LLM",
)
async def analyze_assumptions(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> AssumptionAnalysisResponse:
    """Ask the LLM for hidden assumptions and persist them as ``ai``-sourced."""
    texts = block_texts(get_blocks(db, canvas))
    if not any(texts.values()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Canvas has no content to analyze",
        )

    try:
        extraction = await extract_assumptions(texts)
    except (CanvasAIError, EnvironmentError) as exc:
        logger.error("Assumption extraction failed for canvas %s: %s", canvas.id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze assumptions",
        ) from exc

    created = create_extracted_assumptions(db, canvas, extraction.assumptions)
    print(f"✅ [ASSUMPTIONS] Stored {len(created)} extracted assumptions for canvas {canvas.id}")
    return AssumptionAnalysisResponse(reasoning=extraction.reasoning, assumptions=created)


@router.get(
    "/{assumption_id}",
    response_model=AssumptionRecord,
    summary="Get an assumption",
)
def get_assumption(assumption: Assumption = Depends(get_owned_assumption)) -> AssumptionRecord:
    return to_assumption_record(assumption)


@router.patch(
    "/{assumption_id}",
    response_model=AssumptionRecord,
    summary="Update an assumption",
)
def patch_assumption(
    payload: AssumptionUpdate,
    assumption: Assumption = Depends(get_owned_assumption),
    db: Session = Depends(get_db),
) -> AssumptionRecord:
    return update_assumption(db, assumption, payload)


@router.delete(
    "/{assumption_id}",
    summary="Delete an assumption",
)
def remove_assumption(
    assumption: Assumption = Depends(get_owned_assumption),
    db: Session = Depends(get_db),
) -> dict:
    delete_assumption(db, assumption)
    return {"success": True}


@router.post(
    "/{assumption_id}/suggest-experiment",
    response_model=ExperimentSuggestion,
    summary="Suggest the cheapest experiment for an assumption",
)
async def suggest_experiment_route(
    canvas: Canvas = Depends(get_owned_canvas),
    assumption: Assumption = Depends(get_owned_assumption),
    db: Session = Depends(get_db),
) -> ExperimentSuggestion:
    """Suggestion only — nothing is persisted."""
    try:
        return await suggest_experiment(assumption.assumption_text, block_texts(get_blocks(db, canvas)))
    except (CanvasAIError, EnvironmentError) as exc:
        logger.error("Experiment suggestion failed for assumption %s: %s", assumption.id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to suggest experiment",
        ) from exc
