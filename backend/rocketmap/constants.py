"""Centralized constants for canvases, assumptions and experiments.

This module is the SINGLE SOURCE OF TRUTH for the block taxonomy, the
assumption/experiment enums, and the fixed numbers used by the risk and
viability engines. Reused by models, schemas, services and routes.
"""

from __future__ import annotations

# ── Canvas Block Taxonomy ───────────────────────────────────────────────
# Exactly nine blocks per canvas. LOCKED: the heat map and viability
# preconditions depend on this list being complete.

BLOCK_TYPES: list[str] = [
    "key_partnerships",
    "key_activities",
    "key_resources",
    "value_prop",
    "customer_relationships",
    "channels",
    "customer_segments",
    "cost_structure",
    "revenue_streams",
]

BLOCK_TYPES_SET: frozenset[str] = frozenset(BLOCK_TYPES)

# ── Assumption enums ────────────────────────────────────────────────────
ASSUMPTION_CATEGORIES: list[str] = ["market", "product", "ops", "legal"]
ASSUMPTION_STATUSES: list[str] = ["untested", "testing", "validated", "refuted", "inconclusive"]
RISK_LEVELS: list[str] = ["high", "medium", "low"]
ASSUMPTION_SOURCES: list[str] = ["ai", "user"]

# ── Experiment enums ────────────────────────────────────────────────────
EXPERIMENT_TYPES: list[str] = ["survey", "interview", "mvp", "ab_test", "research", "other"]
EXPERIMENT_STATUSES: list[str] = ["planned", "completed"]
EXPERIMENT_RESULTS: list[str] = ["supports", "contradicts", "inconclusive"]

# Experiment result → assumption status on completion.
# Anything not listed maps to "inconclusive".
RESULT_TO_ASSUMPTION_STATUS: dict[str, str] = {
    "supports": "validated",
    "contradicts": "refuted",
}

EXPERIMENT_ESTIMATE_MAX_CHARS = 50

# ── Severity ↔ risk level (creation-time only) ──────────────────────────
SEVERITY_HIGH_THRESHOLD = 7     # severity >= 7 → high
SEVERITY_MEDIUM_THRESHOLD = 4   # severity >= 4 → medium, else low

RISK_LEVEL_TO_SEVERITY: dict[str, int] = {
    "high": 8,
    "medium": 5,
    "low": 2,
}

# ── Risk engine ─────────────────────────────────────────────────────────
UNTESTED_PENALTY: dict[str, int] = {
    "high": 30,
    "medium": 15,
    "low": 5,
}
REFUTED_PENALTY = 40
INCONCLUSIVE_PENALTY = 10
MAX_RISK_SCORE = 100
TOP_RISKS_LIMIT = 3

# Border tiers, evaluated in this order; first match wins
CRITICAL_RISK_THRESHOLD = 70
WARNING_RISK_THRESHOLD = 40
HEALTHY_CONFIDENCE_THRESHOLD = 70

# ── Viability engine ────────────────────────────────────────────────────
VIABILITY_WEIGHTS: dict[str, float] = {
    "assumptions": 0.4,
    "market": 0.3,
    "unmet_need": 0.3,
}
MIN_BLOCK_CONTENT_CHARS = 10

# ── Segments ────────────────────────────────────────────────────────────
# Assigned by creation order when the client does not pick a color
SEGMENT_COLORS: list[str] = [
    "#6366f1", "#f43f5e", "#10b981", "#f59e0b", "#8b5cf6",
    "#06b6d4", "#ec4899", "#84cc16", "#f97316", "#14b8a6",
]
SEGMENT_QUERY_LIMIT = 100

# ── Data access ─────────────────────────────────────────────────────────
ASSUMPTION_QUERY_LIMIT = 200
DEFAULT_SLUG = "untitled-canvas"
