from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .config import Settings

LOGGER = logging.getLogger(__name__)


@dataclass
class RecrawlOutcome:
    brand_id: str
    ok: bool
    changed_fields: list[str] = field(default_factory=list)
    message: str = ""


def _api(settings: Settings, path: str) -> str:
    return f"{settings.api_base_url.rstrip('/')}{path}"


def fetch_due_profiles(settings: Settings, client: httpx.Client) -> list[dict[str, Any]]:
    res = client.get(
        _api(settings, "/v1/profiles/due-for-recrawl"),
        params={"max_age_hours": settings.recrawl_max_age_hours, "limit": settings.recrawl_batch_size},
    )
    res.raise_for_status()
    return res.json()


def recrawl_profile(settings: Settings, client: httpx.Client, brand_id: str) -> RecrawlOutcome:
    try:
        res = client.post(_api(settings, f"/v1/profiles/{brand_id}/recrawl"), timeout=settings.recrawl_timeout_seconds)
        res.raise_for_status()
    except httpx.HTTPStatusError as exc:
        detail = exc.response.text[:300]
        LOGGER.warning("Re-crawl of %s failed with HTTP %s: %s", brand_id, exc.response.status_code, detail)
        return RecrawlOutcome(brand_id=brand_id, ok=False, message=f"HTTP {exc.response.status_code}: {detail}")
    except httpx.HTTPError as exc:
        LOGGER.warning("Re-crawl of %s failed: %s", brand_id, exc)
        return RecrawlOutcome(brand_id=brand_id, ok=False, message=str(exc))

    diff = res.json().get("diff") or {}
    return RecrawlOutcome(brand_id=brand_id, ok=True, changed_fields=sorted(diff), message="re-crawled")


def recrawl_due_profiles(settings: Settings, transport: httpx.BaseTransport | None = None) -> list[RecrawlOutcome]:
    """Re-crawl every stale profile; one failing brand never stops the batch."""
    outcomes: list[RecrawlOutcome] = []
    with httpx.Client(timeout=20.0, transport=transport) as client:
        try:
            due = fetch_due_profiles(settings, client)
        except httpx.HTTPError as exc:
            LOGGER.error("Could not list profiles due for re-crawl: %s", exc)
            return outcomes

        for row in due:
            brand_id = row.get("brand_id")
            if not brand_id:
                continue
            outcomes.append(recrawl_profile(settings, client, brand_id))
    return outcomes
