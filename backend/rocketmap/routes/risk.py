"""Risk heatmap route."""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.canvas import Canvas
from ..schemas.risk_schema import RiskMetrics
from ..services.assumption_service import list_assumptions
from ..services.auth_dependency import get_owned_canvas
from ..services.risk_engine import build_risk_heatmap

router = APIRouter(
    prefix="/canvas",
    tags=["Risk"],
)


@router.get(
    "/{canvas_id}/risk-heatmap",
    response_model=Dict[str, RiskMetrics],
    summary="Per-block risk heatmap",
    response_description="Risk metrics for each of the 9 block types",
)
def get_risk_heatmap(
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> Dict[str, RiskMetrics]:
    """Derived on every call from the canvas's current assumptions; nothing is stored."""
    return build_risk_heatmap(list_assumptions(db, canvas))
