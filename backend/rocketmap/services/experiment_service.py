"""Experiment persistence and the experiment → assumption status contract.

Creating an experiment moves its assumption to ``testing``. Completing an
experiment with a result moves its assumption to ``validated`` /
``refuted`` / ``inconclusive`` and stamps ``last_tested_at``. Both writes
of each transition happen in one commit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..constants import RESULT_TO_ASSUMPTION_STATUS
from ..models.assumption import Assumption
from ..models.experiment import Experiment
from ..schemas.experiment_schema import ExperimentCreate, ExperimentRecord, ExperimentUpdate

logger = logging.getLogger(__name__)


class ExperimentTransitionError(ValueError):
    """Requested status change is not allowed. Message is client-safe."""


def assumption_status_for_result(result: str) -> str:
    return RESULT_TO_ASSUMPTION_STATUS.get(result, "inconclusive")


def to_experiment_record(row: Experiment) -> ExperimentRecord:
    return ExperimentRecord(
        id=str(row.id),
        assumption_id=str(row.assumption_id),
        type=row.type,
        description=row.description,
        success_criteria=row.success_criteria,
        status=row.status or "planned",
        result=row.result,
        evidence=row.evidence or "",
        source_url=row.source_url,
        cost_estimate=row.cost_estimate,
        duration_estimate=row.duration_estimate,
        created_at=row.created_at,
        completed_at=row.completed_at,
    )


def list_experiments(db: Session, assumption: Assumption) -> List[ExperimentRecord]:
    rows = (
        db.query(Experiment)
        .filter(Experiment.assumption_id == str(assumption.id))
        .order_by(Experiment.created_at.asc())
        .all()
    )
    return [to_experiment_record(r) for r in rows]


def get_experiment_row(db: Session, assumption: Assumption, experiment_id) -> Optional[Experiment]:
    return (
        db.query(Experiment)
        .filter(Experiment.id == str(experiment_id), Experiment.assumption_id == str(assumption.id))
        .first()
    )


def create_experiment(db: Session, assumption: Assumption, payload: ExperimentCreate) -> ExperimentRecord:
    """Plan an experiment and mark the assumption as ``testing``."""
    now = datetime.utcnow()
    row = Experiment(
        assumption_id=assumption.id,
        type=payload.type,
        description=payload.description,
        success_criteria=payload.success_criteria,
        status="planned",
        result=None,
        evidence="",
        source_url=None,
        cost_estimate=payload.cost_estimate,
        duration_estimate=payload.duration_estimate,
        created_at=now,
    )
    db.add(row)
    assumption.status = "testing"
    assumption.updated_at = now
    db.commit()
    db.refresh(row)
    return to_experiment_record(row)


def update_experiment(
    db: Session,
    assumption: Assumption,
    row: Experiment,
    payload: ExperimentUpdate,
) -> ExperimentRecord:
    """Apply a partial update; completion propagates to the assumption.

    Changing the result of an experiment that is already completed
    re-derives the assumption status from the new result.

    Raises
    ------
    ExperimentTransitionError
        ``status="completed"`` without a result (in the payload or already
        stored on the experiment), or reopening a completed experiment.
    """
    updates = payload.model_dump(exclude_unset=True)
    requested_status = updates.get("status")
    result = updates.get("result") or row.result

    if requested_status == "completed" and not result:
        raise ExperimentTransitionError("Completing an experiment requires a result")
    if requested_status == "planned" and row.status == "completed":
        raise ExperimentTransitionError("Completed experiments cannot be reopened")

    if updates.get("evidence") is not None:
        row.evidence = updates["evidence"]
    if "source_url" in updates:
        row.source_url = updates["source_url"]

    already_completed = row.status == "completed"
    result_changed = updates.get("result") is not None and updates["result"] != row.result

    if updates.get("result") is not None:
        row.result = updates["result"]

    if requested_status == "completed" or (already_completed and result_changed):
        now = datetime.utcnow()
        if not already_completed:
            row.status = "completed"
            row.completed_at = now

        new_status = assumption_status_for_result(result)
        assumption.status = new_status
        assumption.last_tested_at = now
        assumption.updated_at = now
        logger.info("Experiment %s completed (%s) → assumption %s is now %s", row.id, result, assumption.id, new_status)

    db.commit()
    db.refresh(row)
    return to_experiment_record(row)


def delete_experiment(db: Session, row: Experiment) -> None:
    db.delete(row)
    db.commit()
