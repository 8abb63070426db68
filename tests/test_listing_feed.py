"""
Listing feed synchronizer tests - push reloads, poll convergence, stale responses, filters.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import UnknownError
from app.realtime.changes import ChangeEvent, ChangeType
from app.schemas.common import LoadState
from app.schemas.item import ItemWithOwnerResponse
from app.services.listing_feed import ListingFeedSynchronizer, filter_listings

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def listing(n: int, title: str, category: str = "Home", description: str = "") -> ItemWithOwnerResponse:
    created = START + timedelta(minutes=n)
    return ItemWithOwnerResponse(
        id=f"item-{n}",
        user_id="owner",
        title=title,
        description=description,
        condition="Good",
        category=category,
        estimated_value=10,
        images=[f"http://test/storage/items/owner/{n}.jpg"],
        status="available",
        created_at=created,
        updated_at=created,
    )


class FakeSource:
    """Stands in for the listings table."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.calls = 0
        self.fail = False

    async def load(self):
        self.calls += 1
        if self.fail:
            raise UnknownError()
        return list(self.rows)


async def wait_for(condition, timeout: float = 2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


def test_filter_listings_matches_title_and_description():
    rows = [
        listing(1, "Oak chair"),
        listing(2, "Table lamp", description="Looks great next to a CHAIR"),
        listing(3, "Bookshelf"),
    ]
    assert [i.title for i in filter_listings(rows, "Chair")] == ["Oak chair", "Table lamp"]
    assert [i.title for i in filter_listings(rows, "")] == ["Oak chair", "Table lamp", "Bookshelf"]


def test_filter_listings_by_category():
    rows = [listing(1, "Oak chair", "Home"), listing(2, "Gaming chair", "Games")]
    assert [i.title for i in filter_listings(rows, "chair", "Games")] == ["Gaming chair"]
    assert filter_listings(rows, "lamp", "Home") == []


@pytest.mark.asyncio
async def test_start_loads_initial_snapshot(changes):
    source = FakeSource([listing(2, "Kettle", "Electronics"), listing(1, "Lamp")])
    feed = ListingFeedSynchronizer(source.load, changes, poll_interval=60)
    assert feed.state is LoadState.IDLE

    await feed.start()
    assert feed.state is LoadState.SUCCESS
    assert [i.title for i in feed.listings] == ["Kettle", "Lamp"]
    assert feed.categories == ["Electronics", "Home"]
    await feed.stop()


@pytest.mark.asyncio
async def test_push_event_triggers_reload(changes):
    source = FakeSource([listing(1, "Lamp")])
    feed = ListingFeedSynchronizer(source.load, changes, poll_interval=60)
    await feed.start()

    new = listing(2, "Kettle")
    source.rows.insert(0, new)
    await changes.publish(
        ChangeEvent(collection="items", type=ChangeType.INSERT, record=new.model_dump(mode="json"))
    )
    await changes.flush()
    assert [i.title for i in feed.listings] == ["Kettle", "Lamp"]

    # A traded listing disappears on the next reload
    source.rows = [new]
    await changes.publish(
        ChangeEvent(collection="items", type=ChangeType.UPDATE, record={"id": "item-1", "status": "traded"})
    )
    await changes.flush()
    assert [i.title for i in feed.listings] == ["Kettle"]
    await feed.stop()


@pytest.mark.asyncio
async def test_poll_converges_without_push(changes):
    source = FakeSource([listing(1, "Lamp")])
    feed = ListingFeedSynchronizer(source.load, changes, poll_interval=0.02)
    await feed.start()

    source.rows = [listing(2, "Kettle")]
    await wait_for(lambda: [i.title for i in feed.listings] == ["Kettle"])
    await feed.stop()


@pytest.mark.asyncio
async def test_stale_response_is_dropped(changes):
    gate = asyncio.Event()
    responses = [[listing(1, "Old")], [listing(2, "New")]]

    async def load():
        rows = responses.pop(0)
        if rows[0].title == "Old":
            await gate.wait()
        return rows

    feed = ListingFeedSynchronizer(load, changes, poll_interval=60)
    slow = asyncio.create_task(feed.reload_snapshot("poll"))
    await asyncio.sleep(0)
    assert await feed.reload_snapshot("push:insert") is True

    gate.set()
    assert await slow is False
    assert [i.title for i in feed.listings] == ["New"]


@pytest.mark.asyncio
async def test_failed_reload_keeps_last_snapshot(changes):
    source = FakeSource([listing(1, "Lamp")])
    feed = ListingFeedSynchronizer(source.load, changes, poll_interval=60)
    await feed.start()

    source.fail = True
    assert await feed.reload_snapshot() is False
    assert feed.state is LoadState.ERROR
    assert feed.error == "Something went wrong"
    assert [i.title for i in feed.listings] == ["Lamp"]

    source.fail = False
    await feed.reload_snapshot()
    assert feed.state is LoadState.SUCCESS
    assert feed.error is None
    await feed.stop()


@pytest.mark.asyncio
async def test_chair_search_scenario(changes):
    source = FakeSource(
        [
            listing(3, "Office Chair", "Home"),
            listing(2, "Table lamp", "Home"),
            listing(1, "Gaming chair", "Games"),
        ]
    )
    snapshots = []

    async def on_snapshot(feed):
        snapshots.append([i.title for i in feed.visible])

    feed = ListingFeedSynchronizer(source.load, changes, poll_interval=60, on_snapshot=on_snapshot)
    await feed.start()
    await feed.set_filter("chair")
    assert [i.title for i in feed.visible] == ["Office Chair", "Gaming chair"]
    await feed.set_filter("chair", "Games")
    assert [i.title for i in feed.visible] == ["Gaming chair"]
    assert snapshots[-1] == ["Gaming chair"]
    await feed.stop()


@pytest.mark.asyncio
async def test_stop_releases_subscription_and_timer(changes):
    source = FakeSource([listing(1, "Lamp")])
    feed = ListingFeedSynchronizer(source.load, changes, poll_interval=0.01)
    await feed.start()
    assert changes.subscriber_count("items") == 1
    assert feed.running

    await feed.stop()
    await feed.stop()
    assert changes.subscriber_count("items") == 0
    assert not feed.running

    calls = source.calls
    await asyncio.sleep(0.05)
    await changes.publish(ChangeEvent(collection="items", type=ChangeType.INSERT, record={"id": "x"}))
    await changes.flush()
    assert source.calls == calls


@pytest.mark.asyncio
async def test_failing_consumer_does_not_break_feed(changes):
    source = FakeSource([listing(1, "Lamp")])

    async def broken(feed):
        raise RuntimeError("socket gone")

    feed = ListingFeedSynchronizer(source.load, changes, poll_interval=60, on_snapshot=broken)
    await feed.start()
    assert feed.state is LoadState.SUCCESS
    await feed.stop()
