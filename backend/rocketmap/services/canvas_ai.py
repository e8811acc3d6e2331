"""LLM-backed canvas services: viability scoring, assumption extraction,
experiment suggestion and single-block critique.

Each function builds its prompt, calls `call_openai_json()` and hands back
either the raw JSON (viability — validated by the aggregator) or a
validated pydantic model. Failures raise ``CanvasAIError``; there are no
silent fallbacks.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ..schemas.assumption_schema import AssumptionExtraction
from ..schemas.block_analysis_schema import BlockAnalysis
from ..schemas.experiment_schema import ExperimentSuggestion
from .canvas_prompts import (
    SYSTEM_PROMPT,
    build_assumption_extraction_prompt,
    build_block_analysis_prompt,
    build_experiment_prompt,
    build_viability_prompt,
)
from .openai_client import call_openai_json

logger = logging.getLogger(__name__)

_VIABILITY_TEMPERATURE = 0.3


class CanvasAIError(RuntimeError):
    """The LLM was unavailable or answered outside the expected schema."""


def _messages(user_prompt: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


async def score_canvas_viability(block_texts: Mapping[str, str]) -> Optional[Dict[str, Any]]:
    """Structured viability scorer. Exactly one call, no retry.

    Returns the raw JSON object (or None); schema validation is the
    aggregator's job.
    """
    return await call_openai_json(
        messages=_messages(build_viability_prompt(block_texts)),
        max_completion_tokens=3000,
        temperature=_VIABILITY_TEMPERATURE,
        max_retries=0,
    )


async def extract_assumptions(block_texts: Mapping[str, str]) -> AssumptionExtraction:
    print("🔍 [ASSUMPTIONS] Extracting assumptions from canvas")
    result = await call_openai_json(
        messages=_messages(build_assumption_extraction_prompt(block_texts)),
        max_completion_tokens=4000,
    )
    if result is None:
        raise CanvasAIError("Assumption extraction returned no result")
    try:
        extraction = AssumptionExtraction.model_validate(result)
    except ValidationError as exc:
        logger.error("Assumption extraction returned malformed payload: %s", exc)
        raise CanvasAIError("Assumption extraction returned malformed data") from exc

    print(f"✅ [ASSUMPTIONS] Extracted {len(extraction.assumptions)} assumptions")
    return extraction


async def suggest_experiment(assumption_text: str, block_texts: Mapping[str, str]) -> ExperimentSuggestion:
    result = await call_openai_json(
        messages=_messages(build_experiment_prompt(assumption_text, block_texts)),
        max_completion_tokens=1000,
    )
    if result is None:
        raise CanvasAIError("Experiment suggestion returned no result")
    try:
        return ExperimentSuggestion.model_validate(result)
    except ValidationError as exc:
        logger.error("Experiment suggestion returned malformed payload: %s", exc)
        raise CanvasAIError("Experiment suggestion returned malformed data") from exc


async def analyze_block(block_type: str, content: str, block_texts: Mapping[str, str]) -> BlockAnalysis:
    print(f"🔍 [BLOCKS] Analyzing {block_type} block")
    result = await call_openai_json(
        messages=_messages(build_block_analysis_prompt(block_type, content, block_texts)),
        max_completion_tokens=3000,
    )
    if result is None:
        raise CanvasAIError("Block analysis returned no result")
    try:
        analysis = BlockAnalysis.model_validate(result)
    except ValidationError as exc:
        logger.error("Block analysis returned malformed payload: %s", exc)
        raise CanvasAIError("Block analysis returned malformed data") from exc

    print(f"✅ [BLOCKS] {block_type}: {len(analysis.risks)} risks, "
          f"{len(analysis.identified_assumptions)} assumptions identified")
    return analysis
