"""Exception classes raised by the profile service and its collaborators."""

from __future__ import annotations


class BrandDNAError(Exception):
    """Base exception for all application errors."""


class AlreadyExistsError(BrandDNAError):
    """A profile already exists for the brand; re-extraction goes through re-crawl."""

    def __init__(self, brand_id: str) -> None:
        super().__init__(f"Brand profile already exists for brand {brand_id!r}. Use re-crawl to update it.")
        self.brand_id = brand_id


class NotFoundError(BrandDNAError):
    """The profile (or another addressed record) does not exist."""


class ExtractionFailedError(BrandDNAError):
    """The extractor failed or timed out. No stored state was changed."""


class InvalidFieldPathError(BrandDNAError, ValueError):
    """Malformed dot-separated field path."""


class ConcurrentUpdateError(BrandDNAError):
    """Another writer changed the profile between read and write."""
