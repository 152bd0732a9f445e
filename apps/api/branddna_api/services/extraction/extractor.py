from __future__ import annotations

import re
import time
from typing import Any, Callable

import httpx

from ...config import Settings
from ...errors import ExtractionFailedError
from ...logging_config import get_logger
from ..provenance import ExtractionChannel, channel_confidence, records_for_document
from .base import ExtractionResult
from .openrouter import OpenRouterAnalyzer
from .website import WebsiteFetcher, WebsitePage, normalize_url

LOGGER = get_logger(__name__)

TITLE_SPLIT_RE = re.compile(r"\s[-|:–—]\s")
MAX_PALETTE = 8


def _tagline_from_title(title: str, name: str) -> str:
    parts = [p.strip() for p in TITLE_SPLIT_RE.split(title) if p.strip()]
    # "Acme | Tools for makers" -> "Tools for makers"
    remainder = [p for p in parts if p.lower() != name.lower()]
    return remainder[0] if remainder and len(parts) > 1 else ""


def _keywords(raw: str) -> list[str]:
    seen: dict[str, None] = {}
    for token in raw.split(","):
        cleaned = token.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def _drop_empty(section: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in section.items() if value not in ("", None, [], {})}


def document_from_metadata(name: str, page: WebsitePage) -> dict[str, Any]:
    meta = {key.lower(): value for key, value in page.meta.items()}
    identity = _drop_empty(
        {
            "official_name": meta.get("og:site_name") or name,
            "tagline": _tagline_from_title(page.title, name),
            "elevator_pitch": meta.get("description") or meta.get("og:description") or "",
            "website": page.final_url,
        }
    )
    seo = _drop_empty({"top_keywords": _keywords(meta.get("keywords", ""))})
    visual_identity = _drop_empty({"color_palette": page.colors[:MAX_PALETTE]})

    document: dict[str, Any] = {"identity": identity}
    if seo:
        document["seo"] = seo
    if visual_identity:
        document["visual_identity"] = visual_identity
    return document


def skeleton_document(name: str, url: str) -> dict[str, Any]:
    return {"identity": {"official_name": name, "website": url}}


class WebsiteBrandExtractor:
    """Fetch the site, then pick the best available channel: LLM analysis, page metadata, or a bare skeleton."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.clock = clock
        self.fetcher = WebsiteFetcher(user_agent=settings.fetch_user_agent, transport=transport)
        self.analyzer = OpenRouterAnalyzer(settings=settings, transport=transport)

    def _remaining(self, deadline: float, budget: float) -> float:
        remaining = deadline - self.clock()
        if remaining <= 0:
            raise ExtractionFailedError(f"Extraction timed out after {budget:.0f}s")
        return remaining

    def extract(self, name: str, url: str, timeout: float | None = None) -> ExtractionResult:
        """Fetch and analysis share one deadline of ``timeout`` seconds (settings default)."""
        budget = timeout or self.settings.extraction_timeout_seconds
        deadline = self.clock() + budget
        page = self.fetcher.fetch(url, timeout=self._remaining(deadline, budget))

        if not page.has_content:
            channel = ExtractionChannel.NO_CONTENT
            document = skeleton_document(name, page.final_url or normalize_url(url))
        elif self.analyzer.enabled():
            channel = ExtractionChannel.LLM_ANALYSIS
            document = self.analyzer.analyze(name, page, timeout=self._remaining(deadline, budget))
        else:
            channel = ExtractionChannel.PAGE_METADATA
            document = document_from_metadata(name, page)

        confidence = channel_confidence(channel, self.settings)
        LOGGER.info("Extracted %s via %s (confidence %s)", page.final_url, channel.value, confidence)
        return ExtractionResult(
            document=document,
            provenance=records_for_document(document, page.final_url, confidence),
            channel=channel,
            source_url=page.final_url,
        )
