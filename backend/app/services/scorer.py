"""
Match Scorer - Blend AI compatibility with geographic proximity

Score Composition:
    - Compatibility (70%): mean of the AI compatibility scores for every
      (subject account × candidate account) pair
    - Distance (30%): linear decay, 100 at 0 miles, 0 at 200+ miles

Score Range: 0-100, rounded to 2 decimals
"""

from typing import Iterable, Optional

COMPATIBILITY_WEIGHT = 0.7
DISTANCE_WEIGHT = 0.3

# Used when an analysis carries no score, or no analyses exist at all
DEFAULT_COMPATIBILITY = 50.0


def distance_score(distance_miles: float) -> float:
    """Linear distance decay: max(0, 100 − miles / 2)."""
    return max(0.0, 100.0 - distance_miles / 2)


def mean_compatibility(scores: Iterable[Optional[float]]) -> float:
    """
    Average compatibility across profile-pair analyses.

    Missing scores count as DEFAULT_COMPATIBILITY; an empty input returns
    DEFAULT_COMPATIBILITY rather than failing the candidate.
    """
    values = [DEFAULT_COMPATIBILITY if s is None else float(s) for s in scores]
    if not values:
        return DEFAULT_COMPATIBILITY
    return sum(values) / len(values)


def blend_score(compatibility: float, distance_miles: float) -> float:
    """
    Final match score.

    Args:
        compatibility: 0-100 compatibility (already averaged)
        distance_miles: Exact distance between subject and candidate

    Returns:
        compatibility × 0.7 + distance_score × 0.3, rounded to 2 decimals

    Example:
        >>> blend_score(100, 0)
        100.0
        >>> blend_score(80, 20)
        83.0
    """
    composite = (
        compatibility * COMPATIBILITY_WEIGHT
        + distance_score(distance_miles) * DISTANCE_WEIGHT
    )
    return round(composite, 2)
