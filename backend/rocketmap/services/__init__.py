from .risk_engine import build_risk_heatmap, calculate_risk_metrics, get_risk_border_tier
from .viability_engine import calculate_viability, compute_overall_score

__all__ = [
    "build_risk_heatmap",
    "calculate_risk_metrics",
    "get_risk_border_tier",
    "calculate_viability",
    "compute_overall_score",
]
