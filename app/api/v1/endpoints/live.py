"""
Live views over WebSocket - the browse feed and a trade's chat.
Challenge: Each socket owns one synchronizer/channel and must release its
subscription and timer when the client goes away.
"""

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.config import get_settings
from app.core.dependencies import Changes
from app.core.errors import NotFoundError, PermissionDeniedError
from app.db.repositories.item_repository import ItemRepository
from app.db.repositories.message_repository import MessageRepository
from app.db.repositories.trade_repository import TradeRepository
from app.db.session import SessionFactory
from app.schemas.common import LoadState
from app.services.auth_service import current_session
from app.services.item_service import ItemService
from app.services.listing_feed import ListingFeedSynchronizer
from app.services.message_channel import MessageChannel
from app.services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_AN_OBJECT = {"type": "error", "detail": "Expected a JSON object"}


async def receive_object(websocket: WebSocket) -> dict | None:
    """Next client frame, or None after telling the client it was not a JSON object."""
    try:
        msg = await websocket.receive_json()
    except ValueError:
        msg = None
    if not isinstance(msg, dict):
        await websocket.send_json(NOT_AN_OBJECT)
        return None
    return msg


def feed_payload(feed: ListingFeedSynchronizer) -> dict:
    return {
        "type": "snapshot",
        "state": feed.state.value,
        "error": feed.error,
        "search": feed.search_term,
        "category": feed.category,
        "categories": feed.categories,
        "listings": [item.model_dump(mode="json") for item in feed.visible],
    }


@router.websocket("/feed/ws")
async def feed_socket(websocket: WebSocket, factory: SessionFactory, changes: Changes):
    """Pushes a filtered snapshot after every reload. Client sends {"search", "category"}."""
    await websocket.accept()

    async def load():
        async with factory() as session:
            return await ItemService(ItemRepository(session), changes).list_available()

    async def push(feed: ListingFeedSynchronizer):
        await websocket.send_json(feed_payload(feed))

    feed = ListingFeedSynchronizer(
        load, changes, get_settings().feed_poll_interval_seconds, on_snapshot=push
    )
    try:
        await feed.start()
        while True:
            msg = await receive_object(websocket)
            if msg is None:
                continue
            await feed.set_filter(msg.get("search", ""), msg.get("category"))
    except WebSocketDisconnect:
        logger.debug("Feed socket closed")
    finally:
        await feed.stop()


@router.websocket("/trades/{trade_id}/messages/ws")
async def messages_socket(
    websocket: WebSocket,
    trade_id: str,
    factory: SessionFactory,
    changes: Changes,
    token: str = Query(...),
):
    """Initial history, then each new message. Client sends {"content": "..."}."""
    ctx = current_session(token)
    if ctx is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # Only the two parties may watch a trade's chat
    async with factory() as session:
        svc = MessageService(MessageRepository(session), TradeRepository(session), changes)
        try:
            await svc.check_participant(ctx, trade_id)
        except (NotFoundError, PermissionDeniedError) as e:
            logger.info("Chat socket for trade %s refused for %s: %s", trade_id, ctx.user_id, e.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    async def load():
        async with factory() as session:
            svc = MessageService(MessageRepository(session), TradeRepository(session), changes)
            return await svc.list_messages(ctx, trade_id)

    async def send(sender_ctx, content):
        async with factory() as session:
            svc = MessageService(MessageRepository(session), TradeRepository(session), changes)
            return await svc.post(sender_ctx, trade_id, content)

    async def push(message):
        await websocket.send_json({"type": "message", "message": message.model_dump(mode="json")})

    await websocket.accept()
    channel = MessageChannel(trade_id, load, send, changes, on_message=push)
    try:
        await channel.open()
        await websocket.send_json(
            {
                "type": "history",
                "state": channel.state.value,
                "error": channel.error,
                "messages": [m.model_dump(mode="json") for m in channel.messages],
            }
        )
        if channel.state is LoadState.ERROR:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            return
        while True:
            msg = await receive_object(websocket)
            if msg is None:
                continue
            sent = await channel.send(ctx, str(msg.get("content", "")))
            if sent is None:
                await websocket.send_json({"type": "error", "detail": channel.error, "draft": channel.draft})
    except WebSocketDisconnect:
        logger.debug("Chat socket for trade %s closed", trade_id)
    finally:
        channel.close()
