# services/confidence.py
"""
Confidence model: folds the four per-signal scores into one score and a tier.
Weights and tier cut-offs are policy values; the defaults below are the calibrated ones.
"""
from typing import NamedTuple, Tuple


class ConfidenceWeights(NamedTuple):
    name: float = 0.6
    structural: float = 0.2
    spatial: float = 0.1
    side: float = 0.1


class TierThresholds(NamedTuple):
    high: float = 0.75
    medium: float = 0.5


DEFAULT_WEIGHTS = ConfidenceWeights()
DEFAULT_THRESHOLDS = TierThresholds()


def clamp_score(value: float) -> float:
    return min(1.0, max(0.0, value))


def score_to_tier(score: float, thresholds: TierThresholds = DEFAULT_THRESHOLDS) -> str:
    if score >= thresholds.high:
        return "high"
    if score >= thresholds.medium:
        return "medium"
    return "low"


def compute_confidence(name: float, structural: float, spatial: float, side: float,
                       weights: ConfidenceWeights = DEFAULT_WEIGHTS,
                       thresholds: TierThresholds = DEFAULT_THRESHOLDS) -> Tuple[float, str]:
    """
    Returns (score, tier). Terms are summed in signal order so results are
    reproducible bit for bit.
    """
    score = clamp_score(
        name * weights.name
        + structural * weights.structural
        + spatial * weights.spatial
        + side * weights.side
    )
    return score, score_to_tier(score, thresholds)
