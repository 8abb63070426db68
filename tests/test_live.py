"""
Live socket tests - snapshot payload shape, chat socket authentication, and both
sockets end to end through the ASGI app.
Challenge: TestClient runs the app on its own event loop, so these tests build their
database and collaborators there (portal.call) instead of using the async fixtures.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.websockets import WebSocketDisconnect

from app.api.v1.endpoints.live import feed_payload
from app.core.session_store import SessionStore, get_session_store
from app.db.base import Base
from app.db.session import get_db, get_session_factory
from app.main import app
from app.realtime.changes import ChangeChannel, get_change_channel
from app.schemas.item import ItemWithOwnerResponse
from app.services.listing_feed import ListingFeedSynchronizer
from app.services.provisioning import ProfileProvisioner, get_provisioner
from app.storage.object_store import ObjectStore, get_object_store
from tests.conftest import bearer, create_item, create_trader

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)

LISTING = {
    "title": "Copper kettle",
    "condition": "Good",
    "category": "Home",
    "estimated_value": 25,
    "images": ["http://test/storage/items/c/1.jpg"],
}


@pytest.fixture
def live(tmp_path):
    """TestClient with every collaborator overridden; run() executes a coroutine on the app's loop."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'live.db'}", poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    changes = ChangeChannel()
    provisioner = ProfileProvisioner(factory)
    sessions = SessionStore()
    sessions.subscribe(provisioner.on_session_change)

    async def override_get_db():
        async with factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_change_channel] = lambda: changes
    app.dependency_overrides[get_object_store] = lambda: ObjectStore(tmp_path / "storage", "http://test/storage")
    app.dependency_overrides[get_provisioner] = lambda: provisioner
    app.dependency_overrides[get_session_store] = lambda: sessions
    with TestClient(app) as client:
        client.portal.call(create_schema)
        yield SimpleNamespace(client=client, factory=factory, changes=changes, run=client.portal.call)
        client.portal.call(engine.dispose)
    app.dependency_overrides.clear()


@pytest.fixture
def world(live):
    """Alice offers her lamp for Bob's kettle; Carol is not involved."""

    async def seed():
        async with live.factory() as s:
            alice = await create_trader(s, "alice@example.com", "alice")
            bob = await create_trader(s, "bob@example.com", "bob")
            carol = await create_trader(s, "carol@example.com", "carol")
            lamp = await create_item(s, alice, "Lamp")
            kettle = await create_item(s, bob, "Kettle")
        return alice, bob, carol, lamp, kettle

    alice, bob, carol, lamp, kettle = live.run(seed)
    response = live.client.post(
        "/api/v1/trades",
        headers=bearer(alice),
        json={"receiver_id": bob.user_id, "requester_items": [lamp], "receiver_items": [kettle]},
    )
    assert response.status_code == 201
    return SimpleNamespace(alice=alice, bob=bob, carol=carol, trade_id=response.json()["id"])


def chat_url(trade_id: str, ctx) -> str:
    return f"/api/v1/trades/{trade_id}/messages/ws?token={ctx.access_token}"


def next_frame(ws, wanted, limit: int = 10) -> dict:
    """Skip frames (e.g. poll snapshots) until one matches."""
    for _ in range(limit):
        frame = ws.receive_json()
        if wanted(frame):
            return frame
    raise AssertionError("expected frame never arrived")


def titles(frame: dict) -> list[str]:
    return sorted(item["title"] for item in frame["listings"])


def test_chat_socket_rejects_bad_token():
    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/api/v1/trades/t1/messages/ws?token=forged"):
                pass
    assert exc.value.code == 1008


def test_chat_socket_sends_history_then_new_messages(live, world):
    url = f"/api/v1/trades/{world.trade_id}/messages"
    live.client.post(url, headers=bearer(world.alice), json={"content": "Hi!"})

    with live.client.websocket_connect(chat_url(world.trade_id, world.alice)) as ws:
        history = ws.receive_json()
        assert history["type"] == "history"
        assert history["state"] == "success"
        assert [m["content"] for m in history["messages"]] == ["Hi!"]
        assert live.changes.subscriber_count("messages") == 1

        response = live.client.post(url, headers=bearer(world.bob), json={"content": "Hello"})
        assert response.status_code == 201
        frame = ws.receive_json()
        assert frame["type"] == "message"
        assert frame["message"]["content"] == "Hello"
        assert frame["message"]["sender_id"] == world.bob.user_id

    assert live.changes.subscriber_count("messages") == 0


def test_chat_socket_send_and_kept_draft(live, world):
    with live.client.websocket_connect(chat_url(world.trade_id, world.bob)) as ws:
        assert ws.receive_json()["messages"] == []

        ws.send_json({"content": "  Deal?  "})
        frame = ws.receive_json()
        assert frame["type"] == "message"
        assert frame["message"]["content"] == "Deal?"

        ws.send_json({"content": "   "})
        assert ws.receive_json() == {"type": "error", "detail": "Message cannot be empty", "draft": "   "}

        ws.send_json(["not", "an", "object"])
        assert ws.receive_json() == {"type": "error", "detail": "Expected a JSON object"}
        ws.send_text("{not json")
        assert ws.receive_json() == {"type": "error", "detail": "Expected a JSON object"}

    history = live.client.get(f"/api/v1/trades/{world.trade_id}/messages", headers=bearer(world.alice))
    assert [m["content"] for m in history.json()] == ["Deal?"]
    assert live.changes.subscriber_count("messages") == 0


@pytest.mark.parametrize("outsider", ["carol", "unknown_trade"])
def test_chat_socket_refuses_outsiders(live, world, outsider):
    trade_id = "no-such-trade" if outsider == "unknown_trade" else world.trade_id
    with pytest.raises(WebSocketDisconnect) as exc:
        with live.client.websocket_connect(chat_url(trade_id, world.carol)):
            pass
    assert exc.value.code == 1008
    assert live.changes.subscriber_count("messages") == 0

    # Later messages on the trade go nowhere
    response = live.client.post(
        f"/api/v1/trades/{world.trade_id}/messages", headers=bearer(world.alice), json={"content": "secret"}
    )
    assert response.status_code == 201
    assert live.changes.subscriber_count("messages") == 0


def test_feed_socket_snapshot_filter_and_release(live, world):
    with live.client.websocket_connect("/api/v1/feed/ws") as ws:
        first = ws.receive_json()
        assert first["type"] == "snapshot"
        assert first["state"] == "success"
        assert titles(first) == ["Kettle", "Lamp"]
        assert first["categories"] == ["Home"]
        assert live.changes.subscriber_count("items") == 1

        ws.send_json({"search": "kettle"})
        frame = next_frame(ws, lambda f: f.get("search") == "kettle")
        assert titles(frame) == ["Kettle"]

        ws.send_json("kettle")
        next_frame(ws, lambda f: f["type"] == "error")

        response = live.client.post("/api/v1/items", headers=bearer(world.carol), json=LISTING)
        assert response.status_code == 201
        frame = next_frame(ws, lambda f: f["type"] == "snapshot" and len(f["listings"]) == 2)
        assert titles(frame) == ["Copper kettle", "Kettle"]

    assert live.changes.subscriber_count("items") == 0


@pytest.mark.asyncio
async def test_feed_payload_applies_filter():
    rows = [
        ItemWithOwnerResponse(
            id=str(n),
            user_id="owner",
            title=title,
            condition="New",
            category=category,
            images=["http://test/storage/items/owner/x.jpg"],
            status="available",
            created_at=NOW,
            updated_at=NOW,
            owner_username="owner",
        )
        for n, (title, category) in enumerate([("Oak chair", "Home"), ("Chess set", "Games")])
    ]

    async def load():
        return rows

    feed = ListingFeedSynchronizer(load, ChangeChannel(), poll_interval=60)
    await feed.start()
    await feed.set_filter("chess")
    payload = feed_payload(feed)
    await feed.stop()

    assert payload["type"] == "snapshot"
    assert payload["state"] == "success"
    assert payload["categories"] == ["Games", "Home"]
    assert [i["title"] for i in payload["listings"]] == ["Chess set"]
    assert payload["listings"][0]["created_at"].startswith("2026-01-01")
