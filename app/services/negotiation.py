"""
Negotiation engine - trade proposal and the pending -> completed | rejected lifecycle.
Challenge: Only the receiver decides, terminal states never change, and an accepted
trade consumes its listings, bumps both profiles and supersedes competing offers
in the same transaction.
Design: next_status() holds the rules as a pure function; NegotiationEngine applies
them through compare-and-set writes and publishes change events after commit.
"""

import logging

from app.config import get_settings
from app.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    UnknownError,
    ValidationError,
)
from app.core.metrics import TRADE_TRANSITIONS
from app.core.session_store import SessionContext
from app.db.base import utcnow
from app.db.models.trade import TradeRequest
from app.db.repositories.item_repository import AVAILABLE, ItemRepository
from app.db.repositories.profile_repository import ProfileRepository
from app.db.repositories.trade_repository import TradeRepository
from app.realtime.changes import ChangeChannel, ChangeEvent, ChangeType
from app.schemas.trade import (
    TradeAction,
    TradeBox,
    TradeCreate,
    TradeItemSummary,
    TradeRecord,
    TradeResponse,
    TradeStatus,
)

logger = logging.getLogger(__name__)

TRANSITIONS: dict[tuple[TradeStatus, TradeAction], TradeStatus] = {
    (TradeStatus.PENDING, TradeAction.ACCEPT): TradeStatus.COMPLETED,
    (TradeStatus.PENDING, TradeAction.REJECT): TradeStatus.REJECTED,
}


def next_status(trade: TradeRecord, action: TradeAction, actor_id: str) -> TradeStatus:
    """Status the trade moves to when actor_id applies action. Raises if not allowed."""
    if actor_id != trade.receiver_id:
        raise PermissionDeniedError("Only the receiver can accept or reject this trade")
    target = TRANSITIONS.get((trade.status, action))
    if target is None:
        raise InvalidTransitionError(f"Trade is already {trade.status.value}")
    return target


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def _to_record(trade: TradeRequest) -> TradeRecord:
    try:
        return TradeRecord.model_validate(trade)
    except ValueError as e:
        logger.error("Malformed trade row %s: %s", getattr(trade, "id", "?"), e)
        raise UnknownError("Trade data is malformed") from e


class NegotiationEngine:
    def __init__(
        self,
        trade_repo: TradeRepository,
        item_repo: ItemRepository,
        profile_repo: ProfileRepository,
        changes: ChangeChannel,
    ):
        self.trade_repo = trade_repo
        self.item_repo = item_repo
        self.profile_repo = profile_repo
        self.changes = changes
        self.session = trade_repo.session

    async def propose(self, ctx: SessionContext, data: TradeCreate) -> TradeResponse:
        """Create a pending trade offering the caller's items for the receiver's."""
        if data.receiver_id == ctx.user_id:
            raise ValidationError("You cannot trade with yourself")
        offered = _unique(data.requester_items)
        wanted = _unique(data.receiver_items)
        if not offered:
            raise ValidationError("Select at least one of your items to offer")
        if not wanted:
            raise ValidationError("Select at least one item to ask for")
        if set(offered) & set(wanted):
            raise ValidationError("An item cannot be on both sides of a trade")

        items = await self.item_repo.get_many_by_ids(offered + wanted)
        self._check_side(items, offered, ctx.user_id, "offered")
        self._check_side(items, wanted, data.receiver_id, "requested")

        trade = await self.trade_repo.add(
            TradeRequest(
                requester_id=ctx.user_id,
                receiver_id=data.receiver_id,
                requester_items=offered,
                receiver_items=wanted,
                status=TradeStatus.PENDING.value,
            )
        )
        await self.session.commit()
        record = _to_record(trade)
        TRADE_TRANSITIONS.labels(status=record.status.value).inc()
        logger.info("Trade %s proposed by %s to %s", record.id, ctx.user_id, data.receiver_id)
        await self._publish(ChangeType.INSERT, record)
        return await self._to_response(record)

    @staticmethod
    def _check_side(items: dict, ids: list[str], owner_id: str, label: str) -> None:
        for item_id in ids:
            item = items.get(item_id)
            if item is None:
                raise NotFoundError(f"The {label} item {item_id} does not exist")
            if item.user_id != owner_id:
                raise ValidationError(f"The {label} item '{item.title}' does not belong to that trader")
            if item.status != AVAILABLE:
                raise ConflictError(f"The {label} item '{item.title}' is no longer available")

    async def accept(self, ctx: SessionContext, trade_id: str) -> TradeResponse:
        return await self._decide(ctx, trade_id, TradeAction.ACCEPT)

    async def reject(self, ctx: SessionContext, trade_id: str) -> TradeResponse:
        return await self._decide(ctx, trade_id, TradeAction.REJECT)

    async def _decide(self, ctx: SessionContext, trade_id: str, action: TradeAction) -> TradeResponse:
        current = await self._load(trade_id)
        target = next_status(current, action, ctx.user_id)
        now = utcnow()

        moved = await self.trade_repo.compare_and_set_status(
            trade_id, TradeStatus.PENDING.value, target.value, now, receiver_id=ctx.user_id
        )
        if not moved:
            # Someone decided between our read and our write
            await self.session.rollback()
            latest = await self._load(trade_id)
            raise InvalidTransitionError(f"Trade is already {latest.status.value}")

        superseded: list[TradeRecord] = []
        consumed: list[str] = []
        if target is TradeStatus.COMPLETED:
            consumed = current.requester_items + current.receiver_items
            superseded = await self._complete(current, consumed, now)

        await self.session.commit()
        # Bulk updates bypassed the identity map
        self.session.expire_all()

        record = await self._load(trade_id)
        TRADE_TRANSITIONS.labels(status=record.status.value).inc()
        logger.info("Trade %s %s by %s", trade_id, record.status.value, ctx.user_id)
        await self._publish(ChangeType.UPDATE, record)
        for other in superseded:
            TRADE_TRANSITIONS.labels(status=other.status.value).inc()
            await self._publish(ChangeType.UPDATE, other)
        for item_id in consumed:
            await self.changes.publish(
                ChangeEvent(
                    collection="items",
                    type=ChangeType.UPDATE,
                    record={"id": item_id, "status": "traded"},
                )
            )
        return await self._to_response(record)

    async def _complete(self, trade: TradeRecord, consumed: list[str], now) -> list[TradeRecord]:
        """Side effects of acceptance. Runs inside the caller's transaction."""
        items = await self.item_repo.get_many_by_ids(consumed, for_update=True)
        for item_id in consumed:
            item = items.get(item_id)
            if item is None or item.status != AVAILABLE:
                title = item.title if item is not None else item_id
                await self.session.rollback()
                raise ConflictError(f"'{title}' is no longer available; this trade cannot be completed")

        await self.item_repo.mark_traded(consumed)
        await self.profile_repo.record_completed_trade(
            [trade.requester_id, trade.receiver_id], get_settings().reputation_per_trade
        )

        superseded = []
        consumed_set = set(consumed)
        for other in await self.trade_repo.list_pending(exclude_id=trade.id):
            if consumed_set & set(other.requester_items + other.receiver_items):
                if await self.trade_repo.compare_and_set_status(
                    other.id, TradeStatus.PENDING.value, TradeStatus.REJECTED.value, now
                ):
                    superseded.append(
                        _to_record(other).model_copy(update={"status": TradeStatus.REJECTED, "updated_at": now})
                    )
        if superseded:
            logger.info("Trade %s superseded %d pending trade(s)", trade.id, len(superseded))
        return superseded

    async def get(self, ctx: SessionContext, trade_id: str) -> TradeResponse:
        record = await self._load(trade_id)
        if ctx.user_id not in (record.requester_id, record.receiver_id):
            raise PermissionDeniedError("You are not part of this trade")
        return await self._to_response(record)

    async def list_trades(self, ctx: SessionContext, box: TradeBox) -> list[TradeResponse]:
        role = "receiver" if box is TradeBox.RECEIVED else "requester"
        trades = await self.trade_repo.list_for_user(ctx.user_id, role)
        records = [_to_record(t) for t in trades]
        return await self._to_responses(records)

    async def _load(self, trade_id: str) -> TradeRecord:
        trade = await self.trade_repo.get_by_id_with_parties(trade_id)
        if trade is None:
            raise NotFoundError("Trade not found")
        return _to_record(trade)

    async def _publish(self, kind: ChangeType, record: TradeRecord) -> None:
        await self.changes.publish(
            ChangeEvent(collection="trade_requests", type=kind, record=record.model_dump(mode="json"))
        )

    async def _to_response(self, record: TradeRecord) -> TradeResponse:
        return (await self._to_responses([record]))[0]

    async def _to_responses(self, records: list[TradeRecord]) -> list[TradeResponse]:
        """Embed usernames and item title/value, two queries for the whole batch."""
        profile_ids = {pid for r in records for pid in (r.requester_id, r.receiver_id)}
        item_ids = {iid for r in records for iid in r.requester_items + r.receiver_items}
        profiles = await self.profile_repo.get_many_by_ids(list(profile_ids))
        items = await self.item_repo.get_many_by_ids(list(item_ids))

        def summarize(ids: list[str]) -> list[TradeItemSummary]:
            out = []
            for item_id in ids:
                item = items.get(item_id)
                out.append(
                    TradeItemSummary(
                        id=item_id,
                        title=item.title if item else None,
                        estimated_value=item.estimated_value if item else None,
                    )
                )
            return out

        responses = []
        for r in records:
            requester = profiles.get(r.requester_id)
            receiver = profiles.get(r.receiver_id)
            responses.append(
                TradeResponse(
                    **r.model_dump(),
                    requester_username=requester.username if requester else None,
                    receiver_username=receiver.username if receiver else None,
                    requester_item_details=summarize(r.requester_items),
                    receiver_item_details=summarize(r.receiver_items),
                )
            )
        return responses
