# src/planboard/tasks/scoring.py

"""
RICE prioritization score.

score = reach * impact * (confidence / 100) / effort

Inputs are clamped/defaulted before computing. The score is stored at full
precision; rounding happens only in format_score() for display.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any

from .task_models import RiceScore

IMPACT_LEVELS: tuple[float, ...] = (0.25, 0.5, 1.0, 2.0, 3.0)

DEFAULT_REACH = 5
DEFAULT_IMPACT = 1.0
DEFAULT_CONFIDENCE = 80.0
DEFAULT_EFFORT = 1.0

MIN_REACH, MAX_REACH = 1, 10
MIN_CONFIDENCE, MAX_CONFIDENCE = 0.0, 100.0
MIN_EFFORT = 0.25


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def clamp_reach(value: Any) -> int:
    f = _as_float(value)
    if f is None:
        return DEFAULT_REACH
    return int(max(MIN_REACH, min(MAX_REACH, round(f))))


def clamp_impact(value: Any) -> float:
    f = _as_float(value)
    if f is None:
        return DEFAULT_IMPACT
    # snap to the closest allowed level
    return min(IMPACT_LEVELS, key=lambda lvl: (abs(lvl - f), lvl))


def clamp_confidence(value: Any) -> float:
    f = _as_float(value)
    if f is None:
        return DEFAULT_CONFIDENCE
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, f))


def clamp_effort(value: Any) -> float:
    f = _as_float(value)
    if f is None:
        return DEFAULT_EFFORT
    return max(MIN_EFFORT, f)


def compute_score(
    reach: Any = DEFAULT_REACH,
    impact: Any = DEFAULT_IMPACT,
    confidence: Any = DEFAULT_CONFIDENCE,
    effort: Any = DEFAULT_EFFORT,
) -> float:
    r = clamp_reach(reach)
    i = clamp_impact(impact)
    c = clamp_confidence(confidence)
    e = clamp_effort(effort)

    score = r * i * (c / 100.0) / e
    if not math.isfinite(score):
        return 0.0
    return score


def format_score(score: Any) -> str:
    """Display form of a score (one decimal). Non-finite values show as 0.0."""
    f = _as_float(score)
    if f is None:
        return "0.0"
    return f"{f:.1f}"


def build_rice(
    reach: Any = None,
    impact: Any = None,
    confidence: Any = None,
    effort: Any = None,
) -> RiceScore:
    r = clamp_reach(reach)
    i = clamp_impact(impact)
    c = clamp_confidence(confidence)
    e = clamp_effort(effort)
    return RiceScore(reach=r, impact=i, confidence=c, effort=e, score=compute_score(r, i, c, e))


def rescore(rice: RiceScore) -> RiceScore:
    """Re-clamp the inputs of an existing block and recompute its score."""
    return build_rice(rice.reach, rice.impact, rice.confidence, rice.effort)


def merge_rice(current: RiceScore | None, **partial: Any) -> RiceScore:
    """
    Apply a partial RICE edit.

    Fields not given keep their current values (or defaults when there is no
    block yet). The score is always recomputed from the merged inputs.
    """
    unknown = set(partial) - {"reach", "impact", "confidence", "effort"}
    if unknown:
        raise ValueError(f"unknown RICE fields: {', '.join(sorted(unknown))}")

    base = current or build_rice()
    merged = replace(
        base,
        **{k: v for k, v in partial.items() if v is not None},
    )
    return rescore(merged)
