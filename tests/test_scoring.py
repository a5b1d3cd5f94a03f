# tests/test_scoring.py

from __future__ import annotations

import math

import pytest

from planboard.tasks.scoring import (
    build_rice,
    clamp_impact,
    compute_score,
    format_score,
    merge_rice,
)


def test_default_inputs_score_four() -> None:
    assert compute_score(5, 1, 80, 1) == pytest.approx(4.0)
    assert build_rice().score == pytest.approx(4.0)


def test_doubling_effort_halves_score() -> None:
    assert compute_score(5, 1, 80, 2) == pytest.approx(2.0)


def test_effort_is_floored_before_dividing() -> None:
    rice = build_rice(5, 1, 80, 0)
    assert rice.effort == 0.25
    assert rice.score == pytest.approx(16.0)
    assert compute_score(5, 1, 80, -3) == pytest.approx(16.0)


def test_inputs_are_clamped_and_defaulted() -> None:
    rice = build_rice(reach=42, impact=None, confidence=150, effort="abc")
    assert rice.reach == 10
    assert rice.impact == 1.0
    assert rice.confidence == 100.0
    assert rice.effort == 1.0

    low = build_rice(reach=-5, confidence=-1)
    assert low.reach == 1
    assert low.confidence == 0.0
    assert low.score == 0.0


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(0.3, 0.25), (0.7, 0.5), (1.4, 1.0), (1.6, 2.0), (9, 3.0), ("2", 2.0)],
)
def test_impact_snaps_to_allowed_levels(raw, expected) -> None:
    assert clamp_impact(raw) == expected


def test_format_score_rounds_for_display_only() -> None:
    rice = build_rice(7, 2, 33, 3)
    # stored at full precision
    assert rice.score == pytest.approx(7 * 2 * 0.33 / 3)
    assert format_score(rice.score) == "1.5"
    assert format_score(math.nan) == "0.0"
    assert format_score(None) == "0.0"


def test_merge_rice_keeps_untouched_fields_and_rescores() -> None:
    base = build_rice(8, 2, 90, 3)
    merged = merge_rice(base, effort=1)
    assert (merged.reach, merged.impact, merged.confidence, merged.effort) == (8, 2.0, 90.0, 1.0)
    assert merged.score == pytest.approx(8 * 2 * 0.9)

    fresh = merge_rice(None, reach=10)
    assert fresh.reach == 10
    assert fresh.score == pytest.approx(8.0)


def test_merge_rice_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError):
        merge_rice(None, speed=3)
