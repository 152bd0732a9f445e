from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from ...schemas import ProvenanceRecord
from ..provenance import ExtractionChannel


@dataclass
class ExtractionResult:
    document: dict[str, Any]
    provenance: list[ProvenanceRecord]
    channel: ExtractionChannel
    source_url: str
    notes: list[str] = field(default_factory=list)


class Extractor(Protocol):
    """Turns a brand's public website into a raw profile document.

    Implementations raise ``ExtractionFailedError`` on failure or timeout and
    never return partial results in that case.
    """

    def extract(self, name: str, url: str, timeout: float | None = None) -> ExtractionResult: ...
