from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Iterable

from ..config import Settings
from ..schemas import ConfidenceTier, ProvenanceRecord
from .paths import FieldPath, is_filled, iter_leaf_paths

USER_TRUST = 100
SUGGESTED_TIER_FLOOR = 70


class ExtractionChannel(str, Enum):
    LLM_ANALYSIS = "llm_analysis"
    PAGE_METADATA = "page_metadata"
    NO_CONTENT = "no_content"


def channel_confidence(channel: ExtractionChannel, settings: Settings) -> int:
    return {
        ExtractionChannel.LLM_ANALYSIS: settings.llm_channel_confidence,
        ExtractionChannel.PAGE_METADATA: settings.metadata_channel_confidence,
        ExtractionChannel.NO_CONTENT: settings.no_content_confidence,
    }[channel]


def confidence_tier(record: ProvenanceRecord) -> ConfidenceTier:
    if record.trust_score >= USER_TRUST or record.extraction_method == "user":
        return "verified"
    if record.trust_score >= SUGGESTED_TIER_FLOOR:
        return "suggested"
    return "review"


def _now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def records_for_document(document: dict[str, Any], source_url: str, confidence: int) -> list[ProvenanceRecord]:
    """One auto record per filled leaf path, all at the extraction channel's confidence."""
    stamped = _now()
    return [
        ProvenanceRecord(
            field_path=path,
            source_url=source_url,
            last_updated=stamped,
            trust_score=confidence,
            extraction_method="auto",
        )
        for path, value in iter_leaf_paths(document)
        if is_filled(value)
    ]


class ProvenanceTracker:
    """Keeps at most one current record per field path, in insertion order."""

    def __init__(self, records: Iterable[ProvenanceRecord | dict[str, Any]] = ()) -> None:
        self._records: dict[str, ProvenanceRecord] = {}
        for raw in records:
            record = raw if isinstance(raw, ProvenanceRecord) else ProvenanceRecord.model_validate(raw)
            # Legacy rows may hold duplicates; the last one wins.
            self._records.pop(record.field_path, None)
            self._records[record.field_path] = record

    @property
    def records(self) -> list[ProvenanceRecord]:
        return list(self._records.values())

    def get(self, field_path: str) -> ProvenanceRecord | None:
        return self._records.get(str(FieldPath.parse(field_path)))

    def _first_source_url(self) -> str:
        first = next(iter(self._records.values()), None)
        return first.source_url if first else ""

    def _put(self, record: ProvenanceRecord) -> ProvenanceRecord:
        self._records.pop(record.field_path, None)
        self._records[record.field_path] = record
        return record

    def record_auto(self, field_path: str, source_url: str, confidence: int) -> ProvenanceRecord:
        return self._put(
            ProvenanceRecord(
                field_path=str(FieldPath.parse(field_path)),
                source_url=source_url,
                last_updated=_now(),
                trust_score=confidence,
                extraction_method="auto",
            )
        )

    def record_user_edit(self, field_path: str, source_url: str, editor_id: str | None = None) -> ProvenanceRecord:
        return self._put(
            ProvenanceRecord(
                field_path=str(FieldPath.parse(field_path)),
                source_url=source_url,
                last_updated=_now(),
                trust_score=USER_TRUST,
                editor_id=editor_id,
                extraction_method="user",
            )
        )

    def approve(self, field_path: str, editor_id: str | None = None) -> ProvenanceRecord:
        path = str(FieldPath.parse(field_path))
        existing = self._records.get(path)
        if existing is not None:
            if (
                existing.trust_score == USER_TRUST
                and existing.extraction_method == "user"
                and existing.editor_id == editor_id
            ):
                return existing
            approved = existing.model_copy(
                update={
                    "trust_score": USER_TRUST,
                    "extraction_method": "user",
                    "editor_id": editor_id,
                    "last_updated": _now(),
                }
            )
            self._records[path] = approved
            return approved

        # No record of its own: borrows the source of whichever record comes first.
        return self._put(
            ProvenanceRecord(
                field_path=path,
                source_url=self._first_source_url(),
                last_updated=_now(),
                trust_score=USER_TRUST,
                editor_id=editor_id,
                extraction_method="user",
            )
        )

    def source_url_for(self, field_path: str) -> str:
        record = self.get(field_path)
        return record.source_url if record else self._first_source_url()

    def low_confidence(self, threshold: int) -> list[ProvenanceRecord]:
        return [r for r in self._records.values() if r.extraction_method == "auto" and r.trust_score < threshold]

    def to_json(self) -> list[dict[str, Any]]:
        return [record.model_dump(mode="json") for record in self._records.values()]
