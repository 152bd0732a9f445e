"""Signals that refine a profile after extraction: low-confidence review and content performance."""

from __future__ import annotations

import datetime as dt
from typing import Any

from .. import models, schemas
from .paths import MISSING, get_value
from .provenance import ProvenanceTracker

POST_PERFORMANCE_PATH = "interaction_history.post_performance"


def suggest_field_updates(profile: models.BrandProfile, threshold: int) -> list[schemas.FieldSuggestion]:
    tracker = ProvenanceTracker(profile.provenance or [])
    suggestions: list[schemas.FieldSuggestion] = []
    for record in tracker.low_confidence(threshold):
        current = get_value(profile.document or {}, record.field_path)
        current = None if current is MISSING else current
        suggestions.append(
            schemas.FieldSuggestion(
                field=record.field_path,
                current_value=current,
                suggested_value=current,
                confidence=record.trust_score,
                reason=f"Low confidence extraction ({record.trust_score}%). Please verify.",
            )
        )
    return suggestions


def performance_entry(req: schemas.ContentPerformanceRequest) -> dict[str, Any]:
    metrics = req.model_dump(exclude={"content_id", "platform"}, exclude_none=True)
    return {
        "post_id": req.content_id,
        "platform": req.platform,
        "metrics": metrics,
        "date": dt.datetime.now(dt.UTC).isoformat(),
    }


def appended_performance(document: dict[str, Any], entry: dict[str, Any]) -> list[dict[str, Any]]:
    current = get_value(document, POST_PERFORMANCE_PATH)
    history = list(current) if isinstance(current, list) else []
    history.append(entry)
    return history
