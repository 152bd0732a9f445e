"""Brand profile lifecycle: create from extraction, re-crawl, field edits and approvals.

Every mutating operation runs under the brand's lock, builds the new
document, provenance and version history in memory, and persists them in
one commit. Extraction happens before anything is written, so a failed or
timed-out extraction leaves the stored profile exactly as it was.
"""

from __future__ import annotations

import copy
import datetime as dt
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .. import models, schemas
from ..config import Settings
from ..errors import AlreadyExistsError, ConcurrentUpdateError, NotFoundError
from ..logging_config import get_logger
from .completion import completion_score, status_for_score
from .diff import FieldChange, diff_documents
from .extraction.base import Extractor
from .learning import POST_PERFORMANCE_PATH, appended_performance, performance_entry, suggest_field_updates
from .locks import BrandLockRegistry
from .paths import MISSING, FieldPath, get_value, set_value, unset_value
from .provenance import ProvenanceTracker
from .versions import VersionLedger

LOGGER = get_logger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class ProfileService:
    def __init__(self, settings: Settings, extractor: Extractor, locks: BrandLockRegistry | None = None) -> None:
        self.settings = settings
        self.extractor = extractor
        self.locks = locks or BrandLockRegistry()

    # -- reads -----------------------------------------------------------

    def _load(self, db: Session, brand_id: str) -> models.BrandProfile | None:
        return db.scalar(select(models.BrandProfile).where(models.BrandProfile.brand_id == brand_id))

    def get_profile(self, db: Session, brand_id: str) -> models.BrandProfile:
        profile = self._load(db, brand_id)
        if profile is None:
            raise NotFoundError(f"Brand profile not found for brand {brand_id!r}")
        return profile

    def list_profiles(self, db: Session, owner_id: str) -> list[models.BrandProfile]:
        stmt = (
            select(models.BrandProfile)
            .where(models.BrandProfile.owner_id == owner_id)
            .order_by(models.BrandProfile.updated_at.desc())
        )
        return list(db.scalars(stmt))

    def due_for_recrawl(self, db: Session, max_age_hours: float, limit: int = 50) -> list[models.BrandProfile]:
        cutoff = _utcnow() - dt.timedelta(hours=max_age_hours)
        stmt = (
            select(models.BrandProfile)
            .where(
                or_(
                    models.BrandProfile.last_crawled_at.is_(None),
                    models.BrandProfile.last_crawled_at < cutoff,
                )
            )
            .order_by(models.BrandProfile.last_crawled_at.asc())
            .limit(limit)
        )
        return list(db.scalars(stmt))

    def get_version(self, db: Session, brand_id: str, version_id: str) -> schemas.VersionEntry | None:
        return VersionLedger(self.get_profile(db, brand_id).versions or []).get(version_id)

    def list_versions(self, db: Session, brand_id: str) -> list[schemas.VersionEntry]:
        return list(VersionLedger(self.get_profile(db, brand_id).versions or []).entries)

    def provenance(self, db: Session, brand_id: str) -> list[schemas.ProvenanceRecord]:
        return ProvenanceTracker(self.get_profile(db, brand_id).provenance or []).records

    def suggestions(self, db: Session, brand_id: str) -> list[schemas.FieldSuggestion]:
        return suggest_field_updates(self.get_profile(db, brand_id), self.settings.low_confidence_threshold)

    # -- writes ----------------------------------------------------------

    def _commit(self, db: Session, brand_id: str) -> None:
        try:
            db.commit()
        except StaleDataError as exc:
            db.rollback()
            raise ConcurrentUpdateError(f"Brand profile {brand_id!r} was modified concurrently; retry") from exc
        except Exception:
            db.rollback()
            raise

    def create_from_extraction(
        self,
        db: Session,
        brand_id: str,
        owner_id: str,
        name: str,
        url: str,
        timeout: float | None = None,
    ) -> models.BrandProfile:
        with self.locks.hold(brand_id):
            if self._load(db, brand_id) is not None:
                raise AlreadyExistsError(brand_id)

            result = self.extractor.extract(name, url, timeout=timeout)

            document = copy.deepcopy(result.document)
            tracker = ProvenanceTracker(result.provenance)
            score = completion_score(document)

            brand = db.get(models.Brand, brand_id)
            if brand is None:
                brand = models.Brand(id=brand_id, owner_id=owner_id, name=name, website_url=url)
                db.add(brand)
            else:
                brand.name = name
                brand.website_url = url

            profile = models.BrandProfile(
                brand_id=brand_id,
                owner_id=owner_id,
                status=status_for_score(score, self.settings.completion_threshold),
                completion_score=score,
                document=document,
                provenance=tracker.to_json(),
                versions=[],
                last_crawled_at=_utcnow(),
            )
            db.add(profile)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise AlreadyExistsError(brand_id) from exc
            except Exception:
                db.rollback()
                raise

            LOGGER.info(
                "Created brand profile for %s via %s: score=%s status=%s",
                brand_id,
                result.channel.value,
                profile.completion_score,
                profile.status,
            )
            return profile

    def recrawl(
        self, db: Session, brand_id: str, timeout: float | None = None
    ) -> tuple[models.BrandProfile, dict[str, FieldChange]]:
        with self.locks.hold(brand_id):
            profile = self.get_profile(db, brand_id)
            brand = profile.brand

            result = self.extractor.extract(brand.name, brand.website_url, timeout=timeout)

            new_document = copy.deepcopy(result.document)
            changes = diff_documents(profile.document or {}, new_document)
            ledger = VersionLedger(profile.versions or [])
            ledger.append(profile.owner_id, f"Re-crawl: {len(changes)} fields changed", changes)

            # Not merged: the new document is live now and the caller reviews the diff afterwards.
            profile.document = new_document
            profile.provenance = ProvenanceTracker(result.provenance).to_json()
            profile.versions = ledger.to_json()
            profile.completion_score = completion_score(new_document)
            profile.status = "needs_review"
            profile.last_crawled_at = _utcnow()
            self._commit(db, brand_id)

            LOGGER.info("Re-crawled brand profile for %s: %s fields changed", brand_id, len(changes))
            return profile, changes

    def update_field(
        self,
        db: Session,
        brand_id: str,
        field_path: str,
        value: Any,
        editor_id: str | None = None,
    ) -> models.BrandProfile:
        path = FieldPath.parse(field_path)
        key = str(path)
        with self.locks.hold(brand_id):
            profile = self.get_profile(db, brand_id)
            editor = editor_id or profile.owner_id

            document = copy.deepcopy(profile.document or {})
            old_value = get_value(document, path)
            if value is MISSING:
                unset_value(document, path)
            else:
                set_value(document, path, value)

            tracker = ProvenanceTracker(profile.provenance or [])
            tracker.record_user_edit(key, tracker.source_url_for(key), editor)

            ledger = VersionLedger(profile.versions or [])
            ledger.append(editor, f"Field updated: {key}", {key: FieldChange(old=old_value, new=value)})

            score = completion_score(document)
            profile.document = document
            profile.provenance = tracker.to_json()
            profile.versions = ledger.to_json()
            profile.completion_score = score
            profile.status = status_for_score(score, self.settings.completion_threshold)
            self._commit(db, brand_id)

            LOGGER.info("Updated %s on brand %s by %s: score=%s", key, brand_id, editor, score)
            return profile

    def approve_field(
        self, db: Session, brand_id: str, field_path: str, editor_id: str | None = None
    ) -> models.BrandProfile:
        path = FieldPath.parse(field_path)
        with self.locks.hold(brand_id):
            profile = self.get_profile(db, brand_id)
            tracker = ProvenanceTracker(profile.provenance or [])
            tracker.approve(str(path), editor_id or profile.owner_id)

            updated = tracker.to_json()
            if updated != profile.provenance:
                profile.provenance = updated
                self._commit(db, brand_id)
                LOGGER.info("Approved %s on brand %s", path, brand_id)
            return profile

    def review_change(
        self,
        db: Session,
        brand_id: str,
        pending: dict[str, FieldChange],
        field_path: str,
        accept: bool,
        editor_id: str | None = None,
    ) -> tuple[models.BrandProfile, dict[str, FieldChange]]:
        """Resolve one entry of a re-crawl diff. Rejecting leaves the profile untouched."""
        key = str(FieldPath.parse(field_path))
        if key not in pending:
            raise NotFoundError(f"No pending change for field {key!r}")

        remaining = {path: change for path, change in pending.items() if path != key}
        if accept:
            profile = self.update_field(db, brand_id, key, pending[key].new, editor_id=editor_id)
        else:
            profile = self.get_profile(db, brand_id)
        return profile, remaining

    def record_content_performance(
        self, db: Session, brand_id: str, req: schemas.ContentPerformanceRequest
    ) -> models.BrandProfile:
        with self.locks.hold(brand_id):
            profile = self.get_profile(db, brand_id)
            document = copy.deepcopy(profile.document or {})
            old_history = get_value(document, POST_PERFORMANCE_PATH)
            history = appended_performance(document, performance_entry(req))
            set_value(document, POST_PERFORMANCE_PATH, history)

            ledger = VersionLedger(profile.versions or [])
            ledger.append(
                profile.owner_id,
                f"Content performance recorded: {req.content_id}",
                {POST_PERFORMANCE_PATH: FieldChange(old=old_history, new=history)},
            )

            # interaction_history is unscored, so status stays where review left it.
            profile.document = document
            profile.versions = ledger.to_json()
            profile.completion_score = completion_score(document)
            self._commit(db, brand_id)
            return profile

    def delete_brand(self, db: Session, brand_id: str) -> None:
        with self.locks.hold(brand_id):
            brand = db.get(models.Brand, brand_id)
            if brand is None:
                raise NotFoundError(f"Brand {brand_id!r} not found")
            db.delete(brand)
            self._commit(db, brand_id)
        self.locks.forget(brand_id)
        LOGGER.info("Deleted brand %s and its profile", brand_id)
