"""Completion score of a profile document and the status it implies."""

from __future__ import annotations

import math
from typing import Any

from .paths import is_filled

# Order is fixed; interaction_history is learned data and never counts toward completeness.
SCORED_SECTIONS = (
    "identity",
    "voice",
    "messaging",
    "products",
    "audience",
    "proof",
    "visual_identity",
    "creative_guidelines",
    "seo",
    "competitive",
    "compliance",
)

SECTION_WEIGHT = 40
FIELD_WEIGHT = 60
DEFAULT_COMPLETE_THRESHOLD = 70


def _section_fields(section: Any) -> list[Any] | None:
    if isinstance(section, dict):
        return list(section.values())
    # A list section is keyed by its indices.
    if isinstance(section, list):
        return list(section)
    return None


def completion_score(document: dict[str, Any]) -> int:
    """Score 0-100: 40 points for section breadth, 60 for field fill-rate."""
    filled_sections = 0
    total_fields = 0
    filled_fields = 0

    for name in SCORED_SECTIONS:
        fields = _section_fields(document.get(name))
        if fields is None:
            continue
        total_fields += len(fields)
        filled = sum(1 for value in fields if is_filled(value))
        filled_fields += filled
        if filled > 0:
            filled_sections += 1

    section_score = filled_sections / len(SCORED_SECTIONS) * SECTION_WEIGHT
    field_score = filled_fields / total_fields * FIELD_WEIGHT if total_fields > 0 else 0.0
    # Half-up, not banker's rounding: 63.5 must become 64.
    return int(math.floor(section_score + field_score + 0.5))


def status_for_score(score: int, threshold: int = DEFAULT_COMPLETE_THRESHOLD) -> str:
    return "complete" if score >= threshold else "needs_review"
