"""
Settlement engine: turns a confirmed payment into a ticket.

Everything a settlement touches (ticket copies, event counters, inventory,
wallet, discount usage and the payment reference itself) is written in one
database transaction. The payment reference row is locked first and is the
single point of mutual exclusion, so a webhook and a client poll racing on
the same reference converge on one ticket.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from spotix.database import async_session
from spotix.discounts import apply_discount, check_discount, find_discount
from spotix.domain import (
    PaymentMethod,
    Purpose,
    SettlementContext,
    SettlementResult,
    Ticket,
    VoteReceipt,
)
from spotix.errors import (
    AmountMismatch,
    DiscountInvalid,
    DiscountNotFound,
    EventNotFound,
    InsufficientFunds,
    InventoryExhausted,
    PriceMismatch,
    ReferenceMismatch,
    ReferenceNotFound,
    StorageConflict,
    TicketTypeNotFound,
    UnsupportedPurpose,
    UserNotFound,
    ValidationError,
)
from spotix.models import (
    Attendee,
    Contestant,
    Discount,
    Event,
    PaymentReference,
    Poll,
    PollEntry,
    TicketHistory,
    TicketPricing,
    Transaction,
    User,
    Wallet,
)
from spotix.notifications import notify_ticket_issued
from spotix.utils import generate_ticket_id

logger = logging.getLogger(__name__)


# ============================================================
#                       PUBLIC API
# ============================================================
async def settle(
    reference_id: str,
    context: SettlementContext | None = None,
    paid_amount: int | None = None,
    rail: PaymentMethod | None = None,
) -> SettlementResult:
    """
    Settle a payment reference whose charge the caller has confirmed.

    `context` is what the payer claims to be buying; without it the stored
    reference is used. `paid_amount` is what the gateway reports as charged
    and `rail` is the payment method that reported it.
    Settling an already-settled reference returns the original ticket with
    already_settled=True and writes nothing.
    """
    event_name = ""
    try:
        async with async_session() as db:
            async with db.begin():
                ref = await db.get(PaymentReference, reference_id, with_for_update=True)
                if ref is None:
                    raise ReferenceNotFound(reference_id)
                if rail is not None and ref.payment_method != rail.value:
                    raise ReferenceMismatch("payment method")

                if ref.settled:
                    if context is not None and ref.purpose == Purpose.TICKET.value:
                        _check_matches(ref, context)
                    result = await _existing_result(db, ref)
                elif paid_amount is not None and paid_amount < ref.amount_minor_units:
                    raise AmountMismatch(ref.amount_minor_units, paid_amount)
                elif ref.purpose == Purpose.TICKET.value:
                    result, event_name = await _issue_ticket(db, ref, context)
                elif ref.purpose == Purpose.VOTE.value:
                    result = await _record_vote(db, ref)
                else:
                    raise UnsupportedPurpose(ref.purpose)
    except (IntegrityError, OperationalError) as exc:
        logger.warning("Settlement of %s hit a storage conflict: %s", reference_id, exc)
        raise StorageConflict(reference_id) from exc

    if result.already_settled:
        logger.warning("Reference %s already settled, returning existing result", reference_id)
    elif result.ticket is not None:
        logger.info(
            "Ticket %s issued for %s (event %s)",
            result.ticket.ticket_id, reference_id, result.ticket.event_id,
        )
        notify_ticket_issued(result.ticket, event_name)
    else:
        logger.info("Reference %s settled (%s)", reference_id, result.purpose.value)

    return result


async def settle_with_retry(
    reference_id: str,
    context: SettlementContext | None = None,
    paid_amount: int | None = None,
    rail: PaymentMethod | None = None,
    attempts: int = 3,
    backoff: float = 0.2,
) -> SettlementResult:
    """settle() that retries transaction contention."""
    for attempt in range(1, attempts + 1):
        try:
            return await settle(reference_id, context, paid_amount, rail)
        except StorageConflict:
            if attempt == attempts:
                raise
            await asyncio.sleep(backoff * attempt)
    raise StorageConflict(reference_id)


# ============================================================
#                      IDEMPOTENT REPLAY
# ============================================================
async def _existing_result(db: AsyncSession, ref: PaymentReference) -> SettlementResult:
    purpose = Purpose(ref.purpose)
    if purpose is Purpose.VOTE:
        entry = (
            await db.execute(select(PollEntry).where(PollEntry.payment_reference_id == ref.id))
        ).scalar_one_or_none()
        vote = None
        if entry is not None:
            vote = VoteReceipt(ref.id, entry.poll_id, entry.contestant_id, entry.vote_count, entry.amount)
        return SettlementResult(ref.id, purpose, already_settled=True, vote=vote)

    record = (
        await db.execute(select(Attendee).where(Attendee.payment_reference_id == ref.id))
    ).scalar_one_or_none()
    ticket = Ticket.from_record(record) if record is not None else None
    return SettlementResult(ref.id, purpose, already_settled=True, ticket=ticket)


# ============================================================
#                       TICKET PURPOSE
# ============================================================
def _check_matches(ref: PaymentReference, ctx: SettlementContext) -> None:
    pairs = {
        "payer": (ref.payer_id, ctx.payer_id),
        "event": (ref.event_id, ctx.event_id),
        "event creator": (ref.event_creator_id, ctx.event_creator_id),
        "ticket type": (ref.ticket_type, ctx.ticket_type),
        "payment method": (ref.payment_method, ctx.payment_method.value),
        "discount code": (ref.discount_code or None, ctx.discount_code or None),
    }
    if ref.payer_id is None:
        raise ReferenceMismatch("payer")
    for field, (stored, claimed) in pairs.items():
        if stored != claimed:
            raise ReferenceMismatch(field)


async def _issue_ticket(
    db: AsyncSession,
    ref: PaymentReference,
    context: SettlementContext | None,
) -> tuple[SettlementResult, str]:
    ctx = context or SettlementContext.from_reference(ref)
    _check_matches(ref, ctx)

    user = await db.get(User, ctx.payer_id)
    if user is None:
        raise UserNotFound(ctx.payer_id)

    event = await db.get(Event, ctx.event_id)
    if event is None or event.creator_id != ctx.event_creator_id:
        raise EventNotFound(ctx.event_id)

    pricing = (
        await db.execute(
            select(TicketPricing).where(
                TicketPricing.event_id == event.id,
                TicketPricing.ticket_type == ctx.ticket_type,
            )
        )
    ).scalar_one_or_none()
    if pricing is None:
        raise TicketTypeNotFound(ctx.ticket_type)
    if ctx.ticket_price != pricing.price:
        raise PriceMismatch(ctx.ticket_price, pricing.price)

    # Pricing
    discount = None
    discount_amount = 0
    if ctx.discount_code:
        discount = await find_discount(db, event.id, ctx.discount_code, lock=True)
        if discount is None:
            raise DiscountNotFound(ctx.discount_code)
        try:
            check_discount(discount)
        except DiscountInvalid as exc:
            # the buyer already paid the discounted total
            logger.warning(
                "Honouring discount %s on %s despite %s", discount.code, ref.id, exc.reason
            )
        discount_amount = apply_discount(pricing.price, discount.discount_type, discount.discount_value)

    price = pricing.price - discount_amount
    total = price + ctx.transaction_fee
    if total != ref.amount_minor_units:
        raise AmountMismatch(ref.amount_minor_units, total)
    if ctx.payment_method is PaymentMethod.FREE and total != 0:
        raise ValidationError("Free tickets must have a zero total")

    # Inventory and event counters
    if pricing.available_tickets is not None:
        res = await db.execute(
            update(TicketPricing)
            .where(TicketPricing.id == pricing.id, TicketPricing.available_tickets > 0)
            .values(available_tickets=TicketPricing.available_tickets - 1)
        )
        if res.rowcount != 1:
            raise InventoryExhausted(ctx.ticket_type)

    await db.execute(
        update(Event)
        .where(Event.id == event.id)
        .values(
            tickets_sold=Event.tickets_sold + 1,
            total_revenue=Event.total_revenue + price,
        )
    )

    # Wallet rail
    if ctx.payment_method is PaymentMethod.WALLET:
        res = await db.execute(
            update(Wallet)
            .where(Wallet.user_id == user.id, Wallet.balance >= total)
            .values(balance=Wallet.balance - total)
        )
        if res.rowcount != 1:
            raise InsufficientFunds()
        db.add(Transaction(
            id=uuid.uuid4().hex,
            user_id=user.id,
            type="debit",
            amount=total,
            description=f"Ticket purchase for {event.name}",
            reference=ref.id,
        ))

    if discount is not None:
        await db.execute(
            update(Discount)
            .where(Discount.id == discount.id)
            .values(used_count=Discount.used_count + 1)
        )

    # Ticket copies
    now = datetime.now(timezone.utc)
    fields = dict(
        doc_id=uuid.uuid4().hex,
        ticket_id=generate_ticket_id(),
        payment_reference_id=ref.id,
        event_id=event.id,
        event_creator_id=event.creator_id,
        owner_id=user.id,
        full_name=user.full_name or "",
        email=user.email or "",
        ticket_type=ctx.ticket_type,
        price=price,
        original_price=pricing.price,
        transaction_fee=ctx.transaction_fee,
        total_amount=total,
        payment_method=ctx.payment_method.value,
        discount_code=discount.code if discount is not None else None,
        referral_code=ctx.referral_code or ref.referral_code,
        verified=False,
        created_at=now,
    )
    attendee = Attendee(**fields)
    db.add(attendee)
    db.add(TicketHistory(**fields, event_name=event.name))

    await _mark_settled(db, ref, now, fields["ticket_id"])
    await db.flush()

    result = SettlementResult(ref.id, Purpose.TICKET, ticket=Ticket.from_record(attendee))
    return result, event.name


# ============================================================
#                        VOTE PURPOSE
# ============================================================
async def _record_vote(db: AsyncSession, ref: PaymentReference) -> SettlementResult:
    poll = await db.get(Poll, ref.poll_id) if ref.poll_id else None
    if poll is None:
        raise ValidationError("Poll not found")
    contestant = await db.get(Contestant, ref.contestant_id) if ref.contestant_id else None
    if contestant is None or contestant.poll_id != poll.id:
        raise ValidationError("Contestant not found in this poll")

    vote_count = ref.vote_count or 0
    expected = vote_count * poll.price_per_vote
    if vote_count <= 0 or ref.amount_minor_units != expected:
        raise AmountMismatch(expected, ref.amount_minor_units)

    await db.execute(
        update(Contestant)
        .where(Contestant.id == contestant.id)
        .values(votes=Contestant.votes + vote_count)
    )
    await db.execute(
        update(Poll)
        .where(Poll.id == poll.id)
        .values(
            poll_count=Poll.poll_count + vote_count,
            poll_amount=Poll.poll_amount + ref.amount_minor_units,
        )
    )
    db.add(PollEntry(
        poll_id=poll.id,
        contestant_id=contestant.id,
        payment_reference_id=ref.id,
        voter_id=ref.payer_id,
        guest_email=ref.guest_email,
        vote_count=vote_count,
        amount=ref.amount_minor_units,
    ))

    await _mark_settled(db, ref, datetime.now(timezone.utc), None)
    await db.flush()

    vote = VoteReceipt(ref.id, poll.id, contestant.id, vote_count, ref.amount_minor_units)
    return SettlementResult(ref.id, Purpose.VOTE, vote=vote)


async def _mark_settled(
    db: AsyncSession,
    ref: PaymentReference,
    now: datetime,
    ticket_id: str | None,
) -> None:
    res = await db.execute(
        update(PaymentReference)
        .where(PaymentReference.id == ref.id, PaymentReference.settled.is_(False))
        .values(settled=True, settled_at=now, ticket_id=ticket_id)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise StorageConflict(ref.id)
