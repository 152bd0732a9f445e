from __future__ import annotations

import json
from typing import Any

import httpx

from ...config import Settings
from ...errors import ExtractionFailedError
from ...logging_config import get_logger
from ..completion import SCORED_SECTIONS
from .website import WebsitePage

LOGGER = get_logger(__name__)

SENTENCE_SPLIT = (".", "!", "?")

DOCUMENT_SHAPE = {
    "identity": {
        "official_name": "string",
        "tagline": "string",
        "elevator_pitch": "string",
        "year_founded": "string",
        "headquarters": "string",
        "website": "string",
    },
    "voice": {
        "tone_descriptors": ["string"],
        "tone_intensity": "string",
        "forbidden_words": ["string"],
        "preferred_emojis": ["string"],
        "punctuation_rules": "string",
        "examples": {"micro_hook": "string", "short_post": "string"},
    },
    "messaging": {"pillars": ["string"], "target_problems": ["string"], "value_propositions": ["string"]},
    "products": {"offerings": [{"name": "string", "description": "string"}], "services": ["string"]},
    "audience": {"primary_segments": ["string"], "demographics": "string", "psychographics": "string", "pain_points": ["string"]},
    "proof": {"testimonials": ["string"], "awards": ["string"], "client_logos": ["string"], "statistics": ["string"]},
    "visual_identity": {
        "color_palette": ["#hex"],
        "logo_description": "string",
        "typography": {"font_families": ["string"], "font_substitutes": ["string"]},
        "image_style_guide": {"mood": "string", "filters": "string", "photography_vs_illustration": "string"},
    },
    "creative_guidelines": {
        "cta_style": "string",
        "preferred_formats": ["string"],
        "post_length_preferences": "string",
        "hashtag_strategy": {"branded_hashtags": ["string"], "banned_hashtags": ["string"]},
    },
    "seo": {"top_keywords": ["string"], "negative_keywords": ["string"], "semantic_clusters": ["string"]},
    "competitive": {"competitors": ["string"], "positioning_statement": "string", "market_trends": ["string"]},
    "compliance": {"allowed_claims": ["string"], "restricted_claims": ["string"], "required_disclaimers": ["string"]},
}


def first_chunk(text: str, max_chars: int) -> str:
    """Most important content is usually at the top; keep whole sentences up to ``max_chars``."""
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    boundary = max(cut.rfind(mark) for mark in SENTENCE_SPLIT)
    return cut[: boundary + 1] if boundary > 0 else cut


def extract_json(content: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        start = content.find("{")
        end = content.rfind("}")
        if start < 0 or end <= start:
            return None
        try:
            parsed = json.loads(content[start : end + 1])
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, dict) else None


def _message_content(data: Any) -> str | None:
    """``choices[0].message.content`` of a chat completion, or None when the body has another shape."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if content is None:
        return ""
    return content if isinstance(content, str) else None


def _keep_known_sections(payload: dict[str, Any]) -> dict[str, Any]:
    return {name: payload[name] for name in SCORED_SECTIONS if isinstance(payload.get(name), (dict, list))}


class OpenRouterAnalyzer:
    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        self.transport = transport

    def enabled(self) -> bool:
        return bool(self.settings.openrouter_api_key)

    def _messages(self, name: str, page: WebsitePage) -> list[dict[str, str]]:
        system_prompt = (
            "You are an expert brand analyst extracting a brand profile from website content. "
            "Return ONLY a JSON object with these top-level sections and field shapes: "
            f"{json.dumps(DOCUMENT_SHAPE)}. "
            "If information is not available use null, empty strings, or empty arrays. Never invent facts."
        )
        content = first_chunk(page.text, self.settings.max_analyzed_chars)
        user_prompt = (
            f"Website Name: {name}\n"
            f"Website URL: {page.final_url}\n\n"
            f"Website Metadata:\n{json.dumps(page.metadata(), indent=2)}\n\n"
            f"Website Content (first {len(content)} characters):\n{content}\n\n"
            "Extract the complete brand profile in JSON format."
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    def analyze(self, name: str, page: WebsitePage, timeout: float) -> dict[str, Any]:
        payload = {
            "model": self.settings.openrouter_model,
            "messages": self._messages(name, page),
            "temperature": 0.3,
            "response_format": {"type": "json_object"},
            "max_tokens": self.settings.openrouter_max_output_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.settings.openrouter_api_key}",
            "Content-Type": "application/json",
            "X-Title": self.settings.app_name,
        }

        try:
            with httpx.Client(timeout=httpx.Timeout(timeout), transport=self.transport) as client:
                response = client.post(
                    f"{self.settings.openrouter_base_url.rstrip('/')}/chat/completions",
                    headers=headers,
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise ExtractionFailedError(f"Brand analysis timed out after {timeout:.0f}s") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 401:
                raise ExtractionFailedError("Brand analysis rejected the API key (HTTP 401)") from exc
            if status == 429:
                raise ExtractionFailedError("Brand analysis rate limit exceeded (HTTP 429); try again later") from exc
            raise ExtractionFailedError(f"Brand analysis failed with HTTP {status}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExtractionFailedError(f"Brand analysis failed: {exc}") from exc

        raw_content = _message_content(data)
        if raw_content is None:
            LOGGER.warning("Brand analysis for %s returned an unexpected response shape", name)
            raise ExtractionFailedError("Brand analysis returned an unexpected response shape")
        parsed = extract_json(raw_content.strip())
        if parsed is None:
            LOGGER.warning("Brand analysis for %s returned non-JSON content", name)
            raise ExtractionFailedError("Brand analysis returned no parseable JSON document")
        return _keep_known_sections(parsed)
