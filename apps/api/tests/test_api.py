import copy

import pytest
from fastapi.testclient import TestClient
from fakes import RICH_DOCUMENT, SPARSE_DOCUMENT

from branddna_api.database import get_db
from branddna_api.errors import ConcurrentUpdateError, ExtractionFailedError
from branddna_api.main import app, get_profile_service

CREATE_BODY = {"brand_id": "brand-1", "owner_id": "owner-1", "name": "Acme", "url": "https://acme.example"}


@pytest.fixture()
def client(session_factory, service) -> TestClient:
    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_profile_service] = lambda: service
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    res = client.get("/v1/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.json()["completion_threshold"] == 70


def test_create_get_and_list(client: TestClient) -> None:
    res = client.post("/v1/profiles", json=CREATE_BODY)
    assert res.status_code == 201
    payload = res.json()
    assert payload["brand_id"] == "brand-1"
    assert payload["status"] == "complete"
    assert payload["completion_score"] == 96
    assert payload["document"] == RICH_DOCUMENT
    assert payload["versions"] == []

    detail = client.get("/v1/profiles/brand-1")
    assert detail.status_code == 200
    assert detail.json()["id"] == payload["id"]

    listed = client.get("/v1/profiles", params={"owner_id": "owner-1"})
    assert listed.status_code == 200
    assert [row["brand_id"] for row in listed.json()] == ["brand-1"]
    assert client.get("/v1/profiles", params={"owner_id": "owner-2"}).json() == []


def test_create_conflict_and_missing_profile(client: TestClient) -> None:
    assert client.post("/v1/profiles", json=CREATE_BODY).status_code == 201
    conflict = client.post("/v1/profiles", json=CREATE_BODY)
    assert conflict.status_code == 409
    assert "re-crawl" in conflict.json()["detail"]

    assert client.get("/v1/profiles/nope").status_code == 404
    assert client.post("/v1/profiles/nope/recrawl").status_code == 404


def test_extraction_failure_maps_to_bad_gateway(client: TestClient, extractor) -> None:
    extractor.error = ExtractionFailedError("Timed out fetching https://acme.example after 45s")
    res = client.post("/v1/profiles", json=CREATE_BODY)
    assert res.status_code == 502
    assert "Timed out" in res.json()["detail"]
    assert client.get("/v1/profiles/brand-1").status_code == 404


def test_recrawl_returns_diff_and_review_resolves_it(client: TestClient, extractor) -> None:
    changed = copy.deepcopy(RICH_DOCUMENT)
    changed["identity"]["tagline"] = "Anvils for everyone"
    del changed["identity"]["year_founded"]
    extractor.queue(RICH_DOCUMENT, changed)
    client.post("/v1/profiles", json=CREATE_BODY)

    res = client.post("/v1/profiles/brand-1/recrawl", json={"timeout_seconds": 30})
    assert res.status_code == 200
    payload = res.json()
    assert payload["profile"]["status"] == "needs_review"
    assert payload["diff"] == {
        "identity.tagline": {"old": "Tools for makers", "new": "Anvils for everyone"},
        "identity.year_founded": {"old": "1999"},
    }
    assert extractor.calls[-1][2] == 30

    accepted = client.post(
        "/v1/profiles/brand-1/review",
        json={"field_path": "identity.tagline", "decision": "accept", "pending": payload["diff"]},
    )
    assert accepted.status_code == 200
    assert accepted.json()["pending"] == {"identity.year_founded": {"old": "1999"}}

    rejected = client.post(
        "/v1/profiles/brand-1/review",
        json={"field_path": "identity.year_founded", "decision": "reject", "pending": accepted.json()["pending"]},
    )
    assert rejected.status_code == 200
    assert rejected.json()["pending"] == {}
    assert "year_founded" not in rejected.json()["profile"]["document"]["identity"]

    missing = client.post(
        "/v1/profiles/brand-1/review",
        json={"field_path": "identity.tagline", "decision": "accept", "pending": {}},
    )
    assert missing.status_code == 404


def test_update_field_and_versions(client: TestClient) -> None:
    client.post("/v1/profiles", json=CREATE_BODY)

    res = client.patch(
        "/v1/profiles/brand-1/fields",
        json={"field_path": "identity.tagline", "value": "Anvils for everyone", "editor_id": "editor-1"},
    )
    assert res.status_code == 200
    assert res.json()["document"]["identity"]["tagline"] == "Anvils for everyone"

    cleared = client.patch("/v1/profiles/brand-1/fields", json={"field_path": "identity.year_founded", "value": None})
    assert cleared.json()["document"]["identity"]["year_founded"] is None

    removed = client.patch("/v1/profiles/brand-1/fields", json={"field_path": "identity.year_founded"})
    assert "year_founded" not in removed.json()["document"]["identity"]

    versions = client.get("/v1/profiles/brand-1/versions")
    assert versions.status_code == 200
    rows = versions.json()
    assert [row["summary"] for row in rows] == [
        "Field updated: identity.tagline",
        "Field updated: identity.year_founded",
        "Field updated: identity.year_founded",
    ]
    assert rows[2]["changes"] == {"identity.year_founded": {"old": None}}

    one = client.get(f"/v1/profiles/brand-1/versions/{rows[0]['version_id']}")
    assert one.status_code == 200
    assert one.json()["author_id"] == "editor-1"
    assert client.get("/v1/profiles/brand-1/versions/unknown").status_code == 404


def test_invalid_field_path_is_unprocessable(client: TestClient) -> None:
    client.post("/v1/profiles", json=CREATE_BODY)
    res = client.patch("/v1/profiles/brand-1/fields", json={"field_path": "identity..tagline", "value": "x"})
    assert res.status_code == 422


def test_approve_and_provenance_tiers(client: TestClient, extractor) -> None:
    extractor.queue(SPARSE_DOCUMENT)
    client.post("/v1/profiles", json=CREATE_BODY)

    before = client.get("/v1/profiles/brand-1/provenance").json()
    assert [(row["field_path"], row["tier"]) for row in before] == [("identity.official_name", "suggested")]

    res = client.post("/v1/profiles/brand-1/fields/approve", json={"field_path": "identity.official_name"})
    assert res.status_code == 200
    assert res.json()["versions"] == []

    after = client.get("/v1/profiles/brand-1/provenance").json()
    assert after[0]["tier"] == "verified"
    assert after[0]["editor_id"] == "owner-1"


def test_suggestions_and_performance(client: TestClient) -> None:
    client.post("/v1/profiles", json=CREATE_BODY)
    assert client.get("/v1/profiles/brand-1/suggestions").json() == []

    res = client.post("/v1/profiles/brand-1/performance", json={"content_id": "post-1", "views": 50, "likes": 4})
    assert res.status_code == 200
    history = res.json()["document"]["interaction_history"]["post_performance"]
    assert history[0]["metrics"] == {"views": 50, "likes": 4}
    assert res.json()["status"] == "complete"


def test_delete_brand(client: TestClient) -> None:
    client.post("/v1/profiles", json=CREATE_BODY)
    assert client.delete("/v1/brands/brand-1").status_code == 204
    assert client.get("/v1/profiles/brand-1").status_code == 404
    assert client.delete("/v1/brands/brand-1").status_code == 404


def test_due_for_recrawl_listing(client: TestClient) -> None:
    client.post("/v1/profiles", json=CREATE_BODY)
    res = client.get("/v1/profiles/due-for-recrawl", params={"max_age_hours": 1})
    assert res.status_code == 200
    assert res.json() == []


def test_lost_write_race_on_performance_is_conflict(client: TestClient, service, monkeypatch) -> None:
    client.post("/v1/profiles", json=CREATE_BODY)

    def lost_race(db, brand_id, req):
        raise ConcurrentUpdateError(f"Brand profile {brand_id!r} was modified concurrently; retry")

    monkeypatch.setattr(service, "record_content_performance", lost_race)
    res = client.post("/v1/profiles/brand-1/performance", json={"content_id": "post-1"})
    assert res.status_code == 409
    assert "modified concurrently" in res.json()["detail"]
