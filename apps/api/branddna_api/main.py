from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db, init_db
from .errors import (
    AlreadyExistsError,
    ConcurrentUpdateError,
    ExtractionFailedError,
    InvalidFieldPathError,
    NotFoundError,
)
from .logging_config import get_logger
from .schemas import (
    ApproveFieldRequest,
    ContentPerformanceRequest,
    CreateProfileRequest,
    FieldSuggestion,
    ProfileOut,
    ProfileSummary,
    ProvenanceView,
    RecrawlRequest,
    RecrawlResponse,
    ReviewRequest,
    ReviewResponse,
    UpdateFieldRequest,
    VersionEntry,
)
from .services.diff import changes_from_json, changes_to_json
from .services.extraction.extractor import WebsiteBrandExtractor
from .services.paths import MISSING
from .services.profiles import ProfileService
from .services.provenance import confidence_tier

settings = get_settings()
LOGGER = get_logger(__name__, level=settings.log_level)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    LOGGER.info("Database initialized for %s", settings.app_name)
    yield


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origin, "http://localhost:3000", "http://127.0.0.1:3000"],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

profile_service = ProfileService(settings=settings, extractor=WebsiteBrandExtractor(settings))


def get_profile_service() -> ProfileService:
    return profile_service


DOMAIN_ERRORS = (NotFoundError, AlreadyExistsError, ConcurrentUpdateError, InvalidFieldPathError, ExtractionFailedError)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (AlreadyExistsError, ConcurrentUpdateError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, InvalidFieldPathError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=502, detail=f"Extraction failed: {exc}")


@app.get("/v1/health")
def health() -> dict:
    return {
        "status": "ok",
        "llm_extraction": bool(settings.openrouter_api_key),
        "completion_threshold": settings.completion_threshold,
    }


@app.post("/v1/profiles", response_model=ProfileOut, status_code=201)
def create_profile(
    req: CreateProfileRequest,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    try:
        profile = service.create_from_extraction(
            db=db,
            brand_id=req.brand_id,
            owner_id=req.owner_id,
            name=req.name,
            url=req.url,
            timeout=req.timeout_seconds,
        )
    except DOMAIN_ERRORS as exc:
        raise _http_error(exc) from exc
    return ProfileOut.model_validate(profile)


@app.get("/v1/profiles", response_model=list[ProfileSummary])
def list_profiles(
    owner_id: str = Query(..., min_length=1, max_length=64),
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> list[ProfileSummary]:
    return [ProfileSummary.model_validate(p) for p in service.list_profiles(db, owner_id)]


@app.get("/v1/profiles/due-for-recrawl", response_model=list[ProfileSummary])
def profiles_due_for_recrawl(
    max_age_hours: float = Query(default=168.0, gt=0, le=24 * 365),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> list[ProfileSummary]:
    return [ProfileSummary.model_validate(p) for p in service.due_for_recrawl(db, max_age_hours, limit)]


@app.get("/v1/profiles/{brand_id}", response_model=ProfileOut)
def get_profile(
    brand_id: str,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    try:
        return ProfileOut.model_validate(service.get_profile(db, brand_id))
    except NotFoundError as exc:
        raise _http_error(exc) from exc


@app.delete("/v1/brands/{brand_id}", status_code=204)
def delete_brand(
    brand_id: str,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> Response:
    try:
        service.delete_brand(db, brand_id)
    except DOMAIN_ERRORS as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@app.post("/v1/profiles/{brand_id}/recrawl", response_model=RecrawlResponse)
def recrawl_profile(
    brand_id: str,
    req: RecrawlRequest | None = None,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> RecrawlResponse:
    timeout = req.timeout_seconds if req else None
    try:
        profile, diff = service.recrawl(db, brand_id, timeout=timeout)
    except DOMAIN_ERRORS as exc:
        raise _http_error(exc) from exc
    return RecrawlResponse(profile=ProfileOut.model_validate(profile), diff=changes_to_json(diff))


@app.patch("/v1/profiles/{brand_id}/fields", response_model=ProfileOut)
def update_field(
    brand_id: str,
    req: UpdateFieldRequest,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    # An omitted "value" removes the field; an explicit null stores null.
    value = req.value if "value" in req.model_fields_set else MISSING
    try:
        profile = service.update_field(db, brand_id, req.field_path, value, editor_id=req.editor_id)
    except DOMAIN_ERRORS as exc:
        raise _http_error(exc) from exc
    return ProfileOut.model_validate(profile)


@app.post("/v1/profiles/{brand_id}/fields/approve", response_model=ProfileOut)
def approve_field(
    brand_id: str,
    req: ApproveFieldRequest,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    try:
        profile = service.approve_field(db, brand_id, req.field_path, editor_id=req.editor_id)
    except DOMAIN_ERRORS as exc:
        raise _http_error(exc) from exc
    return ProfileOut.model_validate(profile)


@app.post("/v1/profiles/{brand_id}/review", response_model=ReviewResponse)
def review_change(
    brand_id: str,
    req: ReviewRequest,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ReviewResponse:
    try:
        profile, remaining = service.review_change(
            db,
            brand_id,
            pending=changes_from_json(req.pending),
            field_path=req.field_path,
            accept=req.decision == "accept",
            editor_id=req.editor_id,
        )
    except DOMAIN_ERRORS as exc:
        raise _http_error(exc) from exc
    return ReviewResponse(profile=ProfileOut.model_validate(profile), pending=changes_to_json(remaining))


@app.get("/v1/profiles/{brand_id}/versions", response_model=list[VersionEntry])
def list_versions(
    brand_id: str,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> list[VersionEntry]:
    try:
        return service.list_versions(db, brand_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc


@app.get("/v1/profiles/{brand_id}/versions/{version_id}", response_model=VersionEntry)
def get_version(
    brand_id: str,
    version_id: str,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> VersionEntry:
    try:
        version = service.get_version(db, brand_id, version_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc
    if version is None:
        raise HTTPException(status_code=404, detail=f"Version {version_id!r} not found")
    return version


@app.get("/v1/profiles/{brand_id}/provenance", response_model=list[ProvenanceView])
def get_provenance(
    brand_id: str,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> list[ProvenanceView]:
    try:
        records = service.provenance(db, brand_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc
    return [ProvenanceView(**record.model_dump(), tier=confidence_tier(record)) for record in records]


@app.get("/v1/profiles/{brand_id}/suggestions", response_model=list[FieldSuggestion])
def get_suggestions(
    brand_id: str,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> list[FieldSuggestion]:
    try:
        return service.suggestions(db, brand_id)
    except NotFoundError as exc:
        raise _http_error(exc) from exc


@app.post("/v1/profiles/{brand_id}/performance", response_model=ProfileOut)
def record_performance(
    brand_id: str,
    req: ContentPerformanceRequest,
    db: Session = Depends(get_db),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileOut:
    try:
        profile = service.record_content_performance(db, brand_id, req)
    except DOMAIN_ERRORS as exc:
        raise _http_error(exc) from exc
    return ProfileOut.model_validate(profile)
