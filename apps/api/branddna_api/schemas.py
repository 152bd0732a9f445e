from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


ProfileStatus = Literal["complete", "needs_review", "in_progress"]
ExtractionMethod = Literal["auto", "user", "hybrid"]
ConfidenceTier = Literal["verified", "suggested", "review"]

# A change is {"old": ..., "new": ...}; a side that did not exist is omitted.
ChangeMap = dict[str, dict[str, Any]]


class ProvenanceRecord(BaseModel):
    field_path: str
    source_url: str = ""
    last_updated: dt.datetime
    trust_score: int = Field(..., ge=0, le=100)
    editor_id: str | None = None
    extraction_method: ExtractionMethod = "auto"


class ProvenanceView(ProvenanceRecord):
    tier: ConfidenceTier


class VersionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    version_id: str
    timestamp: dt.datetime
    author_id: str
    summary: str
    changes: ChangeMap


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    brand_id: str
    owner_id: str
    status: ProfileStatus
    completion_score: int = Field(..., ge=0, le=100)
    document: dict[str, Any]
    provenance: list[ProvenanceRecord]
    versions: list[VersionEntry]
    last_crawled_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class ProfileSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    brand_id: str
    owner_id: str
    status: ProfileStatus
    completion_score: int
    last_crawled_at: dt.datetime | None = None
    updated_at: dt.datetime


class CreateProfileRequest(BaseModel):
    brand_id: str = Field(..., min_length=1, max_length=64)
    owner_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=3, max_length=500)
    timeout_seconds: float | None = Field(default=None, gt=0, le=300)


class RecrawlRequest(BaseModel):
    timeout_seconds: float | None = Field(default=None, gt=0, le=300)


class RecrawlResponse(BaseModel):
    profile: ProfileOut
    diff: ChangeMap


class UpdateFieldRequest(BaseModel):
    field_path: str = Field(..., min_length=1)
    value: Any = None
    editor_id: str | None = None


class ApproveFieldRequest(BaseModel):
    field_path: str = Field(..., min_length=1)
    editor_id: str | None = None


class ReviewRequest(BaseModel):
    field_path: str = Field(..., min_length=1)
    decision: Literal["accept", "reject"]
    pending: ChangeMap
    editor_id: str | None = None


class ReviewResponse(BaseModel):
    profile: ProfileOut
    pending: ChangeMap


class FieldSuggestion(BaseModel):
    field: str
    current_value: Any = None
    suggested_value: Any = None
    confidence: int
    reason: str


class ContentPerformanceRequest(BaseModel):
    content_id: str = Field(..., min_length=1)
    platform: str = "linkedin"
    views: int | None = Field(default=None, ge=0)
    likes: int | None = Field(default=None, ge=0)
    comments: int | None = Field(default=None, ge=0)
    shares: int | None = Field(default=None, ge=0)
    engagement_rate: float | None = Field(default=None, ge=0)
