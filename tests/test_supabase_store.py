import asyncio
from datetime import date

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from core.exceptions import AuthError, StoreError
from models.history import CompletionHistory
from services.session_service import OfflineSessionManager
from services.supabase_store import SupabaseRestStore, history_filters

HABIT_ROW = {
    "id": "6f1c0d5e-0000-4000-8000-000000000001",
    "user_id": "u1",
    "title": "Stretch",
    "is_completed": True,
    "created_at": "2025-02-02T10:00:00+00:00",
}


def test_history_filters():
    params = history_filters("u1", date(2025, 2, 1), date(2025, 3, 1))

    assert params == [
        ("select", "*"),
        ("user_id", "eq.u1"),
        ("date", "gte.2025-02-01"),
        ("date", "lt.2025-03-01"),
    ]
    assert history_filters("u1") == [("select", "*"), ("user_id", "eq.u1")]


async def _store_against(app: web.Application, settings, timeout: float = 5.0):
    server = TestServer(app)
    await server.start_server()
    session = OfflineSessionManager(settings)
    await session.sign_in("me@example.com", "secret")
    store = SupabaseRestStore(str(server.make_url("")), "anon-key", session, timeout=timeout)
    return server, store


@pytest.mark.asyncio
async def test_select_habits_sends_filters_and_credentials(settings):
    seen = {}

    async def handler(request):
        seen["query"] = list(request.query.items())
        seen["apikey"] = request.headers.get("apikey")
        seen["auth"] = request.headers.get("Authorization")
        return web.json_response([HABIT_ROW])

    app = web.Application()
    app.router.add_get("/rest/v1/habits", handler)
    server, store = await _store_against(app, settings)
    try:
        habits = await store.select_habits("u1")
    finally:
        await store.close()
        await server.close()

    assert [h.title for h in habits] == ["Stretch"]
    assert habits[0].is_completed
    assert ("user_id", "eq.u1") in seen["query"]
    assert seen["apikey"] == "anon-key"
    assert seen["auth"].startswith("Bearer offline-")


@pytest.mark.asyncio
async def test_history_rows_are_parsed(settings):
    async def handler(request):
        assert request.query.getall("date") == ["gte.2025-02-01", "lt.2025-03-01"]
        return web.json_response([{
            "id": "r1",
            "user_id": "u1",
            "date": "2025-02-03",
            "completion_percentage": 0.4,
            "created_at": "2025-02-04T00:00:01Z",
        }])

    app = web.Application()
    app.router.add_get("/rest/v1/completion_history", handler)
    server, store = await _store_against(app, settings)
    try:
        rows = await store.select_history("u1", date(2025, 2, 1), date(2025, 3, 1))
    finally:
        await store.close()
        await server.close()

    assert rows == [CompletionHistory.from_dict({
        "id": "r1", "user_id": "u1", "date": "2025-02-03",
        "completion_percentage": 0.4, "created_at": "2025-02-04T00:00:01Z",
    })]


@pytest.mark.asyncio
async def test_update_sends_partial_patch(settings):
    seen = {}

    async def handler(request):
        seen["query"] = dict(request.query)
        seen["body"] = await request.json()
        return web.Response(status=204)

    app = web.Application()
    app.router.add_patch("/rest/v1/habits", handler)
    server, store = await _store_against(app, settings)
    try:
        await store.update_habit("h1", {"is_completed": False})
    finally:
        await store.close()
        await server.close()

    assert seen == {"query": {"id": "eq.h1"}, "body": {"is_completed": False}}


@pytest.mark.asyncio
async def test_unauthorized_is_auth_error(settings):
    async def handler(request):
        return web.json_response({"message": "JWT expired"}, status=401)

    app = web.Application()
    app.router.add_get("/rest/v1/habits", handler)
    server, store = await _store_against(app, settings)
    try:
        with pytest.raises(AuthError):
            await store.select_habits("u1")
    finally:
        await store.close()
        await server.close()


@pytest.mark.asyncio
async def test_server_error_is_store_error(settings):
    async def handler(request):
        return web.json_response({"message": "boom"}, status=503)

    app = web.Application()
    app.router.add_post("/rest/v1/completion_history", handler)
    server, store = await _store_against(app, settings)
    try:
        with pytest.raises(StoreError) as excinfo:
            await store.insert_history(CompletionHistory.new("u1", date(2025, 2, 3), 0.0))
    finally:
        await store.close()
        await server.close()

    assert excinfo.value.status == 503


@pytest.mark.asyncio
async def test_timeout_is_store_error(settings):
    async def handler(request):
        await asyncio.sleep(1)
        return web.json_response([])

    app = web.Application()
    app.router.add_get("/rest/v1/habits", handler)
    server, store = await _store_against(app, settings, timeout=0.1)
    try:
        with pytest.raises(StoreError):
            await store.select_habits("u1")
    finally:
        await store.close()
        await server.close()
