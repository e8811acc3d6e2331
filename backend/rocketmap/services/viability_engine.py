"""Viability Aggregator.

Checks that a canvas is complete enough to score, hands the nine block
texts to an injected structured scorer, and folds the three returned
sub-scores into one weighted overall score:

    overall = round(0.4 * assumptions + 0.3 * market + 0.3 * unmet_need)

The scorer and the persistence step are injected by the caller so the
aggregation itself never touches the network or the database.
All-or-nothing: ``persist`` is only invoked after the scorer response
validated and the overall score was computed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence

from pydantic import ValidationError

from ..constants import BLOCK_TYPES, BLOCK_TYPES_SET, MIN_BLOCK_CONTENT_CHARS, VIABILITY_WEIGHTS
from ..schemas.viability_schema import ViabilityAssessment, ViabilityBreakdown, ViabilityData
from .risk_engine import round_half_up, to_decimal

logger = logging.getLogger(__name__)


class ViabilityPreconditionError(ValueError):
    """Canvas is not ready to be scored. Message is safe to show the client."""


class ViabilityScoringError(RuntimeError):
    """External scorer failed or answered outside the expected schema."""


class BlockContent(Protocol):
    block_type: str
    content_bmc: str
    content_lean: str


ViabilityScorer = Callable[[Dict[str, str]], Awaitable[Optional[Dict[str, Any]]]]
ViabilityPersister = Callable[[ViabilityData], None]


def block_text(block: BlockContent) -> str:
    """Text of whichever content variant is non-empty, BMC first."""
    return (block.content_bmc or "").strip() or (block.content_lean or "").strip()


_SEGMENT_TEXT_FIELDS = (
    "name",
    "description",
    "demographics",
    "psychographics",
    "behavioral",
    "geographic",
    "estimated_size",
)


def segments_text(block: BlockContent) -> str:
    """Linked segment profiles of a ``customer_segments`` block, one line each.

    Other block types, and blocks without a ``segments`` attribute, give "".
    """
    if block.block_type != "customer_segments":
        return ""
    lines = []
    for segment in getattr(block, "segments", None) or []:
        values = [getattr(segment, field, None) for field in _SEGMENT_TEXT_FIELDS]
        line = " | ".join(v for v in values if isinstance(v, str) and v.strip())
        if line:
            lines.append(line)
    return " \n".join(lines)


def viability_text(block: BlockContent) -> str:
    """Block text as scored: ``customer_segments`` also carries its linked segments."""
    base = block_text(block)
    extra = segments_text(block)
    if extra:
        return f"{base}\n{extra}".strip()
    return base


def check_viability_preconditions(blocks: Sequence[BlockContent]) -> None:
    """Raise ``ViabilityPreconditionError`` unless all 9 blocks exist with content.

    Each block needs at least ``MIN_BLOCK_CONTENT_CHARS`` characters after
    trimming. Linked segment text counts toward ``customer_segments``.
    """
    present = [b.block_type for b in blocks]
    missing = [bt for bt in BLOCK_TYPES if bt not in present]
    if missing or len(present) != len(BLOCK_TYPES) or not set(present) <= BLOCK_TYPES_SET:
        detail = f" (missing: {', '.join(missing)})" if missing else ""
        raise ViabilityPreconditionError(f"All 9 blocks must exist{detail}")

    too_short = [b.block_type for b in blocks if len(viability_text(b)) < MIN_BLOCK_CONTENT_CHARS]
    if too_short:
        raise ViabilityPreconditionError(
            f"Each block needs at least {MIN_BLOCK_CONTENT_CHARS} characters of content "
            f"before calculating viability (too short: {', '.join(too_short)})"
        )


def compute_overall_score(breakdown: ViabilityBreakdown) -> int:
    """Fixed 40/30/30 weighting, rounded half-up.

    Weighted in ``Decimal`` so exact halves (e.g. 0.3 * 25 = 7.5) are not
    pulled below .5 by binary float error.
    """
    weighted = sum(
        to_decimal(getattr(breakdown, dimension)) * to_decimal(weight)
        for dimension, weight in VIABILITY_WEIGHTS.items()
    )
    return round_half_up(weighted)


async def calculate_viability(
    blocks: Sequence[BlockContent],
    *,
    scorer: ViabilityScorer,
    persist: ViabilityPersister,
) -> ViabilityData:
    """Validate, score, aggregate and persist a canvas's viability.

    Raises
    ------
    ViabilityPreconditionError
        Missing blocks or too-short content. The scorer is not called.
    ViabilityScoringError
        The scorer raised, returned nothing, or returned a malformed
        payload. Nothing is persisted.
    """
    check_viability_preconditions(blocks)

    block_texts = {b.block_type: viability_text(b) for b in blocks}

    print("🧮 [VIABILITY] Requesting structured scoring for 9 blocks")
    try:
        raw = await scorer(block_texts)
    except Exception as exc:
        logger.error("Viability scorer raised: %s", exc)
        raise ViabilityScoringError("Viability scorer failed") from exc

    if raw is None:
        raise ViabilityScoringError("Viability scorer returned no result")

    try:
        assessment = ViabilityAssessment.model_validate(raw)
    except ValidationError as exc:
        logger.error("Viability scorer returned malformed payload: %s", exc)
        raise ViabilityScoringError("Viability scorer returned malformed data") from exc

    overall = compute_overall_score(assessment.breakdown)

    data = ViabilityData(
        score=overall,
        breakdown=assessment.breakdown,
        reasoning=assessment.reasoning,
        validated_assumptions=assessment.validated_assumptions,
        calculated_at=datetime.utcnow(),
    )

    persist(data)
    print(f"✅ [VIABILITY] Overall score={overall} (assumptions={assessment.breakdown.assumptions}, "
          f"market={assessment.breakdown.market}, unmet_need={assessment.breakdown.unmet_need})")
    return data
