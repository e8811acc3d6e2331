"""Prompt templates for canvas-level LLM calls.

All prompts demand a single JSON object whose keys match the pydantic
contracts in ``schemas/`` exactly; the caller validates the response.
"""

from __future__ import annotations

from typing import Dict, Mapping

from ..constants import BLOCK_TYPES

BLOCK_LABELS: Dict[str, str] = {
    "key_partnerships": "Key Partnerships",
    "key_activities": "Key Activities",
    "key_resources": "Key Resources",
    "value_prop": "Value Propositions",
    "customer_relationships": "Customer Relationships",
    "channels": "Channels",
    "customer_segments": "Customer Segments",
    "cost_structure": "Cost Structure",
    "revenue_streams": "Revenue Streams",
}

SYSTEM_PROMPT = """You are a rigorous startup advisor reviewing a founder's Business Model Canvas.

You MUST respond with ONLY a valid JSON object. No markdown, no explanations outside the JSON.

RULES:
- Base every judgement on the canvas content provided
- Be specific and skeptical; do not flatter the founder
- Use the exact block type keys given in the canvas (e.g. "value_prop", "customer_segments")"""


def format_canvas(block_texts: Mapping[str, str]) -> str:
    """Render block texts in canonical block order. Empty blocks are marked."""
    sections = []
    for block_type in BLOCK_TYPES:
        text = (block_texts.get(block_type) or "").strip() or "(empty)"
        sections.append(f"### {BLOCK_LABELS[block_type]} [{block_type}]\n{text}")
    return "\n\n".join(sections)


def build_viability_prompt(block_texts: Mapping[str, str]) -> str:
    return f"""Assess the overall viability of this business model.

=== CANVAS ===
{format_canvas(block_texts)}

=== SCORING ===
Score three dimensions from 0 to 100:
- assumptions: how well-founded the key assumptions are (evidence vs. wishful thinking)
- market: size, accessibility and timing of the market
- unmet_need: how painful and under-served the customer problem is

List the most important assumptions per block with a status of
"validated", "invalidated" or "untested" and the evidence from the canvas.

=== REQUIRED OUTPUT ===
Return ONLY this exact JSON structure. No other text.
{{
  "score": <number 0-100>,
  "breakdown": {{"assumptions": <number 0-100>, "market": <number 0-100>, "unmet_need": <number 0-100>}},
  "reasoning": "<string>",
  "validated_assumptions": [
    {{"block_type": "<block type key>", "assumption": "<string>", "status": "<validated | invalidated | untested>", "evidence": "<string>"}}
  ]
}}"""


def build_assumption_extraction_prompt(block_texts: Mapping[str, str]) -> str:
    return f"""Analyze this entire business model canvas and extract ALL hidden assumptions the founder is making.

=== CANVAS ===
{format_canvas(block_texts)}

=== FOCUS ===
- Market assumptions (target customers exist, willingness to pay, market size claims)
- Product assumptions (technical feasibility, value delivery, competitive advantage)
- Operational assumptions (resource availability, scalability, partnerships, timelines)
- Legal/regulatory assumptions (compliance, IP protection, contracts)

For each assumption:
- Make it specific and testable (not vague)
- Link it to the relevant block type keys
- Score severity 0-10 by the impact if the assumption is wrong (10 = catastrophic)

=== REQUIRED OUTPUT ===
Return ONLY this exact JSON structure. No other text.
{{
  "reasoning": "<brief step-by-step reasoning about the canvas>",
  "assumptions": [
    {{"statement": "<string>", "category": "<market | product | ops | legal>", "severity_score": <integer 0-10>, "block_types": ["<block type key>"]}}
  ]
}}"""


def build_experiment_prompt(assumption_text: str, block_texts: Mapping[str, str]) -> str:
    return f"""Suggest the cheapest and fastest experiment to validate this assumption:

"{assumption_text}"

=== CANVAS CONTEXT ===
{format_canvas(block_texts)}

Prioritize free/low-cost methods ($0-$100), short timelines (days to weeks),
actionable steps, and measurable success criteria.

=== REQUIRED OUTPUT ===
Return ONLY this exact JSON structure. No other text.
{{
  "type": "<survey | interview | mvp | ab_test | research | other>",
  "description": "<step-by-step instructions>",
  "success_criteria": "<specific, measurable threshold>",
  "cost_estimate": "<max 50 chars, e.g. $0, $50>",
  "duration_estimate": "<max 50 chars, e.g. 5 min, 1 week>",
  "reasoning": "<why this is the cheapest/fastest method>"
}}"""


def build_block_analysis_prompt(block_type: str, content: str, block_texts: Mapping[str, str]) -> str:
    label = BLOCK_LABELS.get(block_type, block_type)
    return f"""Critique the "{label}" [{block_type}] block of this canvas.

=== BLOCK CONTENT ===
{content or "(empty)"}

=== CANVAS CONTEXT ===
{format_canvas(block_texts)}

=== TASK ===
- Propose an improved draft of this block that stays true to the founder's idea
- List the assumptions this block silently depends on
- List the concrete risks that could break this block
- List the open questions the founder should answer next
- Identify hidden assumptions worth testing, each with a risk level and the
  block type keys it affects

=== REQUIRED OUTPUT ===
Return ONLY this exact JSON structure. No other text.
{{
  "draft": "<improved block content>",
  "assumptions": ["<string>"],
  "risks": ["<string>"],
  "questions": ["<string>"],
  "identified_assumptions": [
    {{"statement": "<testable assumption>", "risk_level": "<high | medium | low>", "reasoning": "<string>", "affected_blocks": ["<block type key>"]}}
  ]
}}"""
