"""HTTP-level tests for the FastAPI app (no lifespan; DB and storage overridden)."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from postflow.db import get_db
from postflow.main import app
from postflow.models.db_models import Integration, Post
from postflow.routes.dependencies import get_storage
from postflow.routes.publish import run_scheduled_publish, set_scheduler
from postflow.services.default_templates import DEFAULT_TEMPLATES
from tests.test_instagram_provider import ACCOUNT, FakeGraph, make_provider

ORG = "org-http"
HEADERS = {"X-Organization-Id": ORG}


@pytest_asyncio.fixture
async def client(session, storage):
    async def _db():
        yield session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_storage] = lambda: storage
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    set_scheduler(None)


@pytest_asyncio.fixture
async def integration(session):
    row = Integration(organization_id=ORG, provider_identifier="instagram", internal_id=ACCOUNT, name="acct", access_token="tok")
    session.add(row)
    await session.commit()
    return row


class TestBasics:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.json() == {"status": "ok"}


class TestGenerate:
    """Request validation happens before the workflow starts."""

    @pytest.mark.asyncio
    async def test_short_research_is_rejected(self, client):
        body = {"research": "hi", "isPicture": False, "templateKey": "one_short_personal"}
        assert (await client.post("/generate", json=body, headers=HEADERS)).status_code == 422

    @pytest.mark.asyncio
    async def test_missing_organization_header(self, client):
        body = {"research": "Remote work tips", "isPicture": False, "templateKey": "one_short_personal"}
        assert (await client.post("/generate", json=body)).status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_template_key(self, client):
        body = {"research": "Remote work tips", "isPicture": False, "templateKey": "three_short"}
        assert (await client.post("/generate", json=body, headers=HEADERS)).status_code == 422


class TestPromptTemplates:
    """Template CRUD over HTTP."""

    @pytest.mark.asyncio
    async def test_initialize_then_list(self, client):
        resp = await client.post("/prompt-templates/initialize", headers=HEADERS)
        assert resp.status_code == 200
        assert {t["template_key"] for t in resp.json()} == set(DEFAULT_TEMPLATES)
        again = await client.get("/prompt-templates", headers=HEADERS)
        assert len(again.json()) == len(DEFAULT_TEMPLATES)

    @pytest.mark.asyncio
    async def test_update_and_reset(self, client):
        await client.post("/prompt-templates/initialize", headers=HEADERS)
        resp = await client.put(
            "/prompt-templates/one_short_company", json={"hookPrompt": "custom"}, headers=HEADERS
        )
        assert resp.json()["hook_prompt"] == "custom"

        reset = await client.post("/prompt-templates/one_short_company/reset", headers=HEADERS)
        assert reset.json()["hook_prompt"] == DEFAULT_TEMPLATES["one_short_company"]["hook_prompt"]

    @pytest.mark.asyncio
    async def test_default_endpoint(self, client):
        resp = await client.get("/prompt-templates/thread_long_personal/default")
        assert resp.json()["template_key"] == "thread_long_personal"

    @pytest.mark.asyncio
    async def test_duplicate_create_conflicts(self, client):
        await client.post("/prompt-templates/initialize", headers=HEADERS)
        body = {
            "templateKey": "one_short_personal",
            "name": "dup",
            "researchPrompt": "r",
            "hookPrompt": "h",
            "contentPrompt": "c",
        }
        assert (await client.post("/prompt-templates", json=body, headers=HEADERS)).status_code == 409

    @pytest.mark.asyncio
    async def test_delete_then_get(self, client):
        await client.post("/prompt-templates/initialize", headers=HEADERS)
        assert (await client.delete("/prompt-templates/one_long_company", headers=HEADERS)).status_code == 200
        assert (await client.get("/prompt-templates/one_long_company", headers=HEADERS)).status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_key_in_path(self, client):
        assert (await client.get("/prompt-templates/not_a_key", headers=HEADERS)).status_code == 422


class TestMedia:
    """Upload, list, download and delete."""

    @pytest.mark.asyncio
    async def test_image_roundtrip(self, client):
        upload = await client.post(
            "/media/upload", files={"file": ("pic.png", b"\x89PNG-bytes", "image/png")}, headers=HEADERS
        )
        assert upload.status_code == 200
        media_id = upload.json()["id"]

        listing = await client.get("/media", headers=HEADERS)
        assert [m["id"] for m in listing.json()["results"]] == [media_id]

        download = await client.get(f"/media/{media_id}/file", headers=HEADERS)
        assert download.content == b"\x89PNG-bytes"

        other = await client.get(f"/media/{media_id}/file", headers={"X-Organization-Id": "someone-else"})
        assert other.status_code == 404

        assert (await client.delete(f"/media/{media_id}", headers=HEADERS)).status_code == 200
        assert (await client.get("/media", headers=HEADERS)).json()["results"] == []


class TestPublish:
    """Immediate and scheduled publishing."""

    @pytest.mark.asyncio
    async def test_unknown_integration(self, client):
        body = {"integration_id": 999, "items": [{"id": "i1", "message": "m", "media": ["https://cdn.x/a.png"]}]}
        assert (await client.post("/publish", json=body, headers=HEADERS)).status_code == 404

    @pytest.mark.asyncio
    async def test_publish_now_records_results(self, client, session, integration):
        provider, _ = make_provider(FakeGraph())
        body = {
            "integration_id": integration.id,
            "items": [
                {"id": "i1", "message": "caption", "media": ["https://cdn.x/a.png"]},
                {"id": "i2", "message": "comment"},
            ],
        }
        with patch("postflow.routes.publish.InstagramProvider.from_settings", return_value=provider):
            resp = await client.post("/publish", json=body, headers=HEADERS)

        assert resp.status_code == 200
        assert [r["status"] for r in resp.json()["results"]] == ["success", "success"]
        posts = (await session.execute(select(Post).order_by(Post.id))).scalars().all()
        assert [p.status for p in posts] == ["PUBLISHED", "PUBLISHED"]
        assert posts[0].release_url == "https://instagram.com/p/m-1"

    @pytest.mark.asyncio
    async def test_provider_failure_maps_to_502(self, client, session, integration):
        graph = FakeGraph()
        graph.errors[f"{ACCOUNT}/media"] = {"error": {"message": "Rate limited", "code": 4}}
        provider, _ = make_provider(graph)
        body = {"integration_id": integration.id, "items": [{"id": "i1", "message": "m", "media": ["https://cdn.x/a.png"]}]}
        with patch("postflow.routes.publish.InstagramProvider.from_settings", return_value=provider):
            resp = await client.post("/publish", json=body, headers=HEADERS)
        assert resp.status_code == 502
        assert resp.json()["detail"] == "Rate limited"
        post = (await session.execute(select(Post))).scalar_one()
        assert (post.status, post.error) == ("ERROR", "Rate limited")

    @pytest.mark.asyncio
    async def test_future_publish_is_queued(self, client, session, integration):
        scheduler = MagicMock()
        set_scheduler(scheduler)
        when = datetime.now(timezone.utc) + timedelta(days=2)
        body = {
            "integration_id": integration.id,
            "scheduled_at": when.isoformat(),
            "items": [{"id": "i1", "message": "later", "media": ["https://cdn.x/a.png"]}],
        }
        resp = await client.post("/publish", json=body, headers=HEADERS)

        assert resp.json()["status"] == "scheduled"
        group_id = resp.json()["group_id"]
        job = scheduler.add_job.call_args
        assert job.args == (run_scheduled_publish, "date")
        assert job.kwargs["args"] == [group_id]
        post = (await session.execute(select(Post))).scalar_one()
        assert (post.status, post.group_id) == ("QUEUE", group_id)
        assert post.settings["request_item_id"] == "i1"

    @pytest.mark.asyncio
    async def test_network_failure_maps_to_502(self, client, session, integration):
        def down(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider, _ = make_provider(down)
        body = {"integration_id": integration.id, "items": [{"id": "i1", "message": "m", "media": ["https://cdn.x/a.png"]}]}
        with patch("postflow.routes.publish.InstagramProvider.from_settings", return_value=provider):
            resp = await client.post("/publish", json=body, headers=HEADERS)
        assert resp.status_code == 502
        assert resp.json()["detail"].startswith("Instagram request failed")
        post = (await session.execute(select(Post))).scalar_one()
        assert post.status == "ERROR"

    @pytest.mark.asyncio
    async def test_scheduled_job_marks_rows_on_network_failure(self, client, engine, integration):
        when = datetime.now(timezone.utc) + timedelta(days=1)
        body = {
            "integration_id": integration.id,
            "scheduled_at": when.isoformat(),
            "items": [
                {"id": "i1", "message": "later", "media": ["https://cdn.x/a.png"]},
                {"id": "i2", "message": "comment"},
            ],
        }
        group_id = (await client.post("/publish", json=body, headers=HEADERS)).json()["group_id"]

        def down(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider, _ = make_provider(down)
        factory = async_sessionmaker(engine, expire_on_commit=False)
        with patch("postflow.routes.publish.init_db", return_value=factory), patch(
            "postflow.routes.publish.InstagramProvider.from_settings", return_value=provider
        ):
            await run_scheduled_publish(group_id)

        async with factory() as s:
            posts = (await s.execute(select(Post).where(Post.group_id == group_id))).scalars().all()
        assert [p.status for p in posts] == ["ERROR", "ERROR"]
        assert all(p.error.startswith("Instagram request failed") for p in posts)


class TestAnalytics:
    """Account insights over HTTP."""

    @pytest.mark.asyncio
    async def test_returns_series(self, client, integration):
        def insights(request):
            if request.url.params.get("metric_type") == "total_value":
                return httpx.Response(200, json={"data": [{"name": "views", "title": "Views", "total_value": {"value": 7}}]})
            return httpx.Response(200, json={"data": []})

        provider, _ = make_provider(insights)
        with patch("postflow.routes.analytics.InstagramProvider.from_settings", return_value=provider):
            resp = await client.get(f"/analytics/{integration.id}", params={"days": 30}, headers=HEADERS)

        assert resp.status_code == 200
        assert [s["label"] for s in resp.json()] == ["Views"]
        assert [d["total"] for d in resp.json()[0]["data"]] == [7, 7]

    @pytest.mark.asyncio
    async def test_unknown_integration(self, client):
        assert (await client.get("/analytics/999", headers=HEADERS)).status_code == 404

    @pytest.mark.asyncio
    async def test_days_out_of_range(self, client, integration):
        assert (await client.get(f"/analytics/{integration.id}", params={"days": 0}, headers=HEADERS)).status_code == 422
