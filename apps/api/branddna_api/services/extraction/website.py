from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import httpx
from bs4 import BeautifulSoup, Comment

from ...errors import ExtractionFailedError
from ...logging_config import get_logger

LOGGER = get_logger(__name__)

COLOR_RE = re.compile(r"#[0-9A-Fa-f]{6}\b|#[0-9A-Fa-f]{3}\b|rgba?\([^)]+\)")
NON_VISIBLE_TAGS = ["script", "style", "noscript", "template", "title"]

MAX_COLORS = 12


def _clean_text(value: str) -> str:
    return re.sub(r"\s+", " ", value.strip())


def normalize_url(url: str) -> str:
    cleaned = url.strip()
    if not cleaned.startswith(("http://", "https://")):
        cleaned = f"https://{cleaned}"
    return cleaned


@dataclass
class WebsitePage:
    requested_url: str
    final_url: str
    html: str
    text: str = ""
    title: str = ""
    meta: dict[str, str] = field(default_factory=dict)
    open_graph: dict[str, str] = field(default_factory=dict)
    colors: list[str] = field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return bool(self.text or self.title or self.meta)

    def metadata(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.meta)
        if self.title:
            payload["title"] = self.title
        if self.open_graph:
            payload["openGraph"] = dict(self.open_graph)
        if self.colors:
            payload["colors"] = list(self.colors)
        return payload


def extract_title(soup: BeautifulSoup) -> str:
    if soup.title is None:
        return ""
    return _clean_text(soup.title.get_text())


def extract_meta(soup: BeautifulSoup) -> tuple[dict[str, str], dict[str, str]]:
    meta: dict[str, str] = {}
    open_graph: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        key = tag.get("name") or tag.get("property")
        content = tag.get("content")
        if not key or not content:
            continue
        content = _clean_text(content)
        meta[key] = content
        if key.lower().startswith("og:"):
            open_graph[key] = content
    return meta, open_graph


def extract_colors(soup: BeautifulSoup) -> list[str]:
    css_chunks = [tag.get_text() for tag in soup.find_all("style")]
    css_chunks.extend(tag["style"] for tag in soup.find_all(style=True))
    seen: dict[str, None] = {}
    for chunk in css_chunks:
        for color in COLOR_RE.findall(chunk):
            seen.setdefault(color.lower(), None)
            if len(seen) >= MAX_COLORS:
                return list(seen)
    return list(seen)


def extract_visible_text(soup: BeautifulSoup) -> str:
    """Text a visitor would read. Mutates ``soup``: non-visible tags and comments are removed."""
    for tag in soup(NON_VISIBLE_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return _clean_text(soup.get_text(" "))


def parse_page(requested_url: str, final_url: str, html: str) -> WebsitePage:
    soup = BeautifulSoup(html or "", "html.parser")
    title = extract_title(soup)
    meta, open_graph = extract_meta(soup)
    colors = extract_colors(soup)
    return WebsitePage(
        requested_url=requested_url,
        final_url=final_url,
        html=html,
        text=extract_visible_text(soup),
        title=title,
        meta=meta,
        open_graph=open_graph,
        colors=colors,
    )


class WebsiteFetcher:
    def __init__(self, user_agent: str, transport: httpx.BaseTransport | None = None) -> None:
        self.user_agent = user_agent
        self.transport = transport

    def fetch(self, url: str, timeout: float) -> WebsitePage:
        target = normalize_url(url)
        try:
            with httpx.Client(
                timeout=httpx.Timeout(timeout),
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self.transport,
            ) as client:
                res = client.get(target)
                res.raise_for_status()
                html = res.text
        except httpx.TimeoutException as exc:
            LOGGER.warning("Website fetch timed out for %s after %.1fs", target, timeout)
            raise ExtractionFailedError(f"Timed out fetching {target} after {timeout:.0f}s") from exc
        except httpx.HTTPStatusError as exc:
            LOGGER.warning("Website fetch for %s returned HTTP %s", target, exc.response.status_code)
            raise ExtractionFailedError(f"Fetching {target} returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            LOGGER.warning("Website fetch failed for %s: %s", target, exc)
            raise ExtractionFailedError(f"Unable to fetch {target}: {exc}") from exc

        return parse_page(requested_url=target, final_url=str(res.url), html=html)
