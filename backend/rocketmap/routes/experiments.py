"""Experiment routes, nested under an assumption.

Creating an experiment marks the assumption ``testing``; completing one
with a result moves the assumption to ``validated`` / ``refuted`` /
``inconclusive``.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.assumption import Assumption
from ..models.experiment import Experiment
from ..schemas.experiment_schema import (
    ExperimentCreate,
    ExperimentListResponse,
    ExperimentRecord,
    ExperimentUpdate,
)
from ..services.auth_dependency import get_owned_assumption
from ..services.experiment_service import (
    ExperimentTransitionError,
    create_experiment,
    delete_experiment,
    get_experiment_row,
    list_experiments,
    update_experiment,
)

router = APIRouter(
    prefix="/canvas/{canvas_id}/assumptions/{assumption_id}/experiments",
    tags=["Experiments"],
)


def _owned_experiment(
    experiment_id: UUID,
    assumption: Assumption = Depends(get_owned_assumption),
    db: Session = Depends(get_db),
) -> Experiment:
    row = get_experiment_row(db, assumption, experiment_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Experiment {experiment_id} not found",
        )
    return row


@router.get("/", response_model=ExperimentListResponse, summary="List experiments")
def get_experiments(
    assumption: Assumption = Depends(get_owned_assumption),
    db: Session = Depends(get_db),
) -> ExperimentListResponse:
    return ExperimentListResponse(records=list_experiments(db, assumption))


@router.post(
    "/",
    response_model=ExperimentRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Plan an experiment",
)
def post_experiment(
    payload: ExperimentCreate,
    assumption: Assumption = Depends(get_owned_assumption),
    db: Session = Depends(get_db),
) -> ExperimentRecord:
    record = create_experiment(db, assumption, payload)
    print(f"🧪 [EXPERIMENTS] Planned {record.type} experiment for assumption {assumption.id}")
    return record


@router.patch("/{experiment_id}", response_model=ExperimentRecord, summary="Update or complete an experiment")
def patch_experiment(
    payload: ExperimentUpdate,
    assumption: Assumption = Depends(get_owned_assumption),
    row: Experiment = Depends(_owned_experiment),
    db: Session = Depends(get_db),
) -> ExperimentRecord:
    try:
        return update_experiment(db, assumption, row, payload)
    except ExperimentTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete("/{experiment_id}", summary="Delete an experiment")
def remove_experiment(
    row: Experiment = Depends(_owned_experiment),
    db: Session = Depends(get_db),
) -> dict:
    delete_experiment(db, row)
    return {"success": True}
