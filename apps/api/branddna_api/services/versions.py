from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Iterable

from ..schemas import VersionEntry
from .diff import FieldChange, changes_to_json


class VersionLedger:
    """Append-only history. Entries are frozen models; nothing is ever removed or edited."""

    def __init__(self, entries: Iterable[VersionEntry | dict[str, Any]] = ()) -> None:
        self._entries: list[VersionEntry] = [
            entry if isinstance(entry, VersionEntry) else VersionEntry.model_validate(entry) for entry in entries
        ]

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[VersionEntry, ...]:
        return tuple(self._entries)

    def append(self, author_id: str, summary: str, changes: dict[str, FieldChange]) -> VersionEntry:
        entry = VersionEntry(
            version_id=str(uuid.uuid4()),
            timestamp=dt.datetime.now(dt.UTC),
            author_id=author_id,
            summary=summary,
            changes=changes_to_json(changes),
        )
        self._entries.append(entry)
        return entry

    def get(self, version_id: str) -> VersionEntry | None:
        for entry in self._entries:
            if entry.version_id == version_id:
                return entry
        return None

    def to_json(self) -> list[dict[str, Any]]:
        return [entry.model_dump(mode="json") for entry in self._entries]
