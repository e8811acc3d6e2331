"""Deterministic Risk Engine.

Turns the assumptions of one canvas into per-block risk metrics for the
heat map, and maps those metrics onto a border tier.

Rules
-----
- NO API calls
- NO DB access
- NO errors — every function is total over well-formed input
- Only ``status`` and ``risk_level`` drive the risk score;
  ``severity_score`` is ignored here
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Sequence, Union

from ..constants import (
    BLOCK_TYPES,
    CRITICAL_RISK_THRESHOLD,
    HEALTHY_CONFIDENCE_THRESHOLD,
    INCONCLUSIVE_PENALTY,
    MAX_RISK_SCORE,
    REFUTED_PENALTY,
    TOP_RISKS_LIMIT,
    UNTESTED_PENALTY,
    WARNING_RISK_THRESHOLD,
)
from ..schemas.assumption_schema import AssumptionRecord
from ..schemas.risk_schema import BorderTier, RiskMetrics


def to_decimal(value: Union[int, float, Decimal]) -> Decimal:
    """Exact decimal for a score; floats go through ``str`` so 0.3 stays 0.3."""
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round_half_up(value: Union[int, float, Decimal]) -> int:
    """Round to the nearest integer, .5 going up (Python's ``round`` is banker's)."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _linked(block_type: str, assumptions: Sequence[AssumptionRecord]) -> List[AssumptionRecord]:
    return [a for a in assumptions if block_type in a.block_types]


def _penalty(assumption: AssumptionRecord) -> int:
    if assumption.status == "untested":
        return UNTESTED_PENALTY.get(assumption.risk_level, 0)
    if assumption.status == "refuted":
        return REFUTED_PENALTY
    if assumption.status == "inconclusive":
        return INCONCLUSIVE_PENALTY
    # validated / testing
    return 0


def calculate_block_risk(block_type: str, assumptions: Sequence[AssumptionRecord]) -> int:
    """Additive status/risk-level penalties for one block, clamped to 100."""
    total = sum(_penalty(a) for a in _linked(block_type, assumptions))
    return min(MAX_RISK_SCORE, total)


def calculate_block_confidence(block_type: str, assumptions: Sequence[AssumptionRecord]) -> int:
    """Mean confidence of the linked assumptions, 0 when nothing is linked."""
    linked = _linked(block_type, assumptions)
    if not linked:
        return 0
    mean = sum(to_decimal(a.confidence_score) for a in linked) / len(linked)
    return round_half_up(mean)


def _untested_at(level: str, linked: Sequence[AssumptionRecord]) -> List[AssumptionRecord]:
    return [a for a in linked if a.status == "untested" and a.risk_level == level]


def calculate_risk_metrics(block_type: str, assumptions: Sequence[AssumptionRecord]) -> RiskMetrics:
    """Compute the full ``RiskMetrics`` record for one block.

    Parameters
    ----------
    block_type : str
        One of the nine canvas block types.
    assumptions : sequence of AssumptionRecord
        Every assumption of the canvas — filtering happens here.

    Returns
    -------
    RiskMetrics
        Risk and confidence scores (0-100), untested counts per risk level,
        and up to three top-risk statements in listing order.
    """
    linked = _linked(block_type, assumptions)
    untested_high = _untested_at("high", linked)

    return RiskMetrics(
        risk_score=calculate_block_risk(block_type, assumptions),
        confidence_score=calculate_block_confidence(block_type, assumptions),
        untested_high_risk=len(untested_high),
        untested_medium_risk=len(_untested_at("medium", linked)),
        untested_low_risk=len(_untested_at("low", linked)),
        top_risks=[a.statement for a in untested_high[:TOP_RISKS_LIMIT]],
    )


def build_risk_heatmap(assumptions: Sequence[AssumptionRecord]) -> Dict[str, RiskMetrics]:
    """Risk metrics for all nine block types, keyed by block type."""
    return {block_type: calculate_risk_metrics(block_type, assumptions) for block_type in BLOCK_TYPES}


def get_risk_border_tier(risk_score: float, confidence_score: float) -> BorderTier:
    """Presentation tier for a block. First matching rule wins."""
    if risk_score >= CRITICAL_RISK_THRESHOLD:
        return "critical"
    if risk_score >= WARNING_RISK_THRESHOLD:
        return "warning"
    if confidence_score >= HEALTHY_CONFIDENCE_THRESHOLD:
        return "healthy"
    return "neutral"
