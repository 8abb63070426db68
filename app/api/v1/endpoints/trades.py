"""
Trade endpoints - propose, list, accept, reject, and the per-trade chat.
"""

from fastapi import APIRouter, Query, status

from app.core.dependencies import Changes, CurrentSession
from app.db.repositories.item_repository import ItemRepository
from app.db.repositories.message_repository import MessageRepository
from app.db.repositories.profile_repository import ProfileRepository
from app.db.repositories.trade_repository import TradeRepository
from app.db.session import DbSession
from app.schemas.message import MessageCreate, MessageRecord
from app.schemas.trade import TradeBox, TradeCreate, TradeResponse
from app.services.message_service import MessageService
from app.services.negotiation import NegotiationEngine

router = APIRouter()


def _get_engine(session: DbSession, changes: Changes) -> NegotiationEngine:
    return NegotiationEngine(
        TradeRepository(session), ItemRepository(session), ProfileRepository(session), changes
    )


def _get_message_service(session: DbSession, changes: Changes) -> MessageService:
    return MessageService(MessageRepository(session), TradeRepository(session), changes)


@router.post("", response_model=TradeResponse, status_code=status.HTTP_201_CREATED)
async def propose_trade(session: DbSession, changes: Changes, ctx: CurrentSession, data: TradeCreate):
    engine = _get_engine(session, changes)
    return await engine.propose(ctx, data)


@router.get("", response_model=list[TradeResponse])
async def list_trades(
    session: DbSession,
    changes: Changes,
    ctx: CurrentSession,
    box: TradeBox = Query(TradeBox.RECEIVED),
):
    """Trades the caller received (default) or sent, newest first."""
    engine = _get_engine(session, changes)
    return await engine.list_trades(ctx, box)


@router.get("/{trade_id}", response_model=TradeResponse)
async def get_trade(session: DbSession, changes: Changes, ctx: CurrentSession, trade_id: str):
    engine = _get_engine(session, changes)
    return await engine.get(ctx, trade_id)


@router.post("/{trade_id}/accept", response_model=TradeResponse)
async def accept_trade(session: DbSession, changes: Changes, ctx: CurrentSession, trade_id: str):
    engine = _get_engine(session, changes)
    return await engine.accept(ctx, trade_id)


@router.post("/{trade_id}/reject", response_model=TradeResponse)
async def reject_trade(session: DbSession, changes: Changes, ctx: CurrentSession, trade_id: str):
    engine = _get_engine(session, changes)
    return await engine.reject(ctx, trade_id)


@router.get("/{trade_id}/messages", response_model=list[MessageRecord])
async def list_messages(session: DbSession, changes: Changes, ctx: CurrentSession, trade_id: str):
    svc = _get_message_service(session, changes)
    return await svc.list_messages(ctx, trade_id)


@router.post("/{trade_id}/messages", response_model=MessageRecord, status_code=status.HTTP_201_CREATED)
async def post_message(
    session: DbSession, changes: Changes, ctx: CurrentSession, trade_id: str, data: MessageCreate
):
    svc = _get_message_service(session, changes)
    return await svc.post(ctx, trade_id, data.content)
