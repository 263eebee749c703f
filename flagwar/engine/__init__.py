"""Scoring and move search."""

from flagwar.engine.scoring import ScoreBreakdown, ScoreWeights, evaluate_state, evaluate_total
from flagwar.engine.exploration import (
    ExplorationConfig, PositionExplorationStrategy, SearchAnalysis, SearchResult, Strategy,
)

__all__ = [
    "ScoreBreakdown", "ScoreWeights", "evaluate_state", "evaluate_total",
    "ExplorationConfig", "PositionExplorationStrategy", "SearchAnalysis", "SearchResult", "Strategy",
]
