"""
Payment references: the server-side record of an intent to pay.

The amount on a reference is computed here from the listed price, the
discount and the fee, and never changes afterwards. Settlement later checks
the charge against it.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from spotix.database import async_session
from spotix.discounts import apply_discount, check_discount, find_discount
from spotix.domain import PaymentMethod, Purpose
from spotix.errors import (
    EventNotFound,
    PriceMismatch,
    ReferenceNotFound,
    TicketTypeNotFound,
    UnsupportedPaymentMethod,
    UserNotFound,
    ValidationError,
)
from spotix.models import Contestant, Event, PaymentReference, Poll, TicketPricing, User
from spotix.utils import generate_reference

logger = logging.getLogger(__name__)

TICKET_METHODS = (PaymentMethod.PAYSTACK, PaymentMethod.MONNIFY, PaymentMethod.WALLET, PaymentMethod.FREE)
VOTE_METHODS = (PaymentMethod.PAYSTACK, PaymentMethod.MONNIFY)

# keys a Paystack charge carries in its metadata for ticket purchases
METADATA_KEYS = ("userId", "eventId", "eventCreatorId", "ticketType")


def reference_to_dict(ref: PaymentReference) -> dict[str, Any]:
    return {
        "reference": ref.id,
        "amount": ref.amount_minor_units,
        "purpose": ref.purpose,
        "paymentMethod": ref.payment_method,
        "settled": ref.settled,
        "ticketId": ref.ticket_id,
    }


async def get_reference(reference_id: str) -> PaymentReference:
    async with async_session() as db:
        ref = await db.get(PaymentReference, reference_id)
    if ref is None:
        raise ReferenceNotFound(reference_id)
    return ref


async def create_ticket_reference(
    payer_id: str,
    event_id: str,
    event_creator_id: str,
    ticket_type: str,
    ticket_price: int,
    payment_method: PaymentMethod = PaymentMethod.PAYSTACK,
    transaction_fee: int = 0,
    discount_code: str | None = None,
    referral_code: str | None = None,
) -> PaymentReference:
    """Record a ticket purchase intent with its server-computed total."""
    payment_method = PaymentMethod(payment_method)
    if payment_method not in TICKET_METHODS:
        raise UnsupportedPaymentMethod(payment_method.value)

    async with async_session() as db:
        async with db.begin():
            if await db.get(User, payer_id) is None:
                raise UserNotFound(payer_id)

            event = await db.get(Event, event_id)
            if event is None or event.creator_id != event_creator_id:
                raise EventNotFound(event_id)

            pricing = (
                await db.execute(
                    select(TicketPricing).where(
                        TicketPricing.event_id == event_id,
                        TicketPricing.ticket_type == ticket_type,
                    )
                )
            ).scalar_one_or_none()
            if pricing is None:
                raise TicketTypeNotFound(ticket_type)
            if pricing.price != ticket_price:
                raise PriceMismatch(ticket_price, pricing.price)
            if pricing.available_tickets is not None and pricing.available_tickets <= 0:
                raise ValidationError(f"'{ticket_type}' tickets are sold out")

            discount_amount = 0
            if discount_code:
                discount = check_discount(await find_discount(db, event_id, discount_code))
                discount_amount = apply_discount(pricing.price, discount.discount_type, discount.discount_value)

            total = pricing.price - discount_amount + transaction_fee
            if payment_method is PaymentMethod.FREE and total != 0:
                raise ValidationError("This ticket is not free")

            ref = PaymentReference(
                id=generate_reference(),
                payer_id=payer_id,
                amount_minor_units=total,
                purpose=Purpose.TICKET.value,
                payment_method=payment_method.value,
                event_id=event_id,
                event_creator_id=event_creator_id,
                ticket_type=ticket_type,
                ticket_price=pricing.price,
                transaction_fee=transaction_fee,
                discount_code=discount_code or None,
                referral_code=referral_code or None,
                settled=False,
                ticket_id=None,
            )
            db.add(ref)

    logger.info("Created %s reference %s for %s (%s kobo)", payment_method.value, ref.id, payer_id, total)
    return ref


async def create_free_reference(
    payer_id: str,
    event_id: str,
    event_creator_id: str,
    ticket_type: str,
    discount_code: str | None = None,
    referral_code: str | None = None,
) -> PaymentReference:
    """Zero-amount reference for free ticket types or fully discounted ones."""
    async with async_session() as db:
        pricing = (
            await db.execute(
                select(TicketPricing).where(
                    TicketPricing.event_id == event_id,
                    TicketPricing.ticket_type == ticket_type,
                )
            )
        ).scalar_one_or_none()
    if pricing is None:
        raise TicketTypeNotFound(ticket_type)

    return await create_ticket_reference(
        payer_id,
        event_id,
        event_creator_id,
        ticket_type,
        pricing.price,
        payment_method=PaymentMethod.FREE,
        discount_code=discount_code,
        referral_code=referral_code,
    )


async def create_vote_reference(
    payer_id: str | None,
    poll_id: str,
    contestant_id: str,
    vote_count: int,
    payment_method: PaymentMethod = PaymentMethod.PAYSTACK,
    guest_name: str | None = None,
    guest_email: str | None = None,
) -> PaymentReference:
    payment_method = PaymentMethod(payment_method)
    if payment_method not in VOTE_METHODS:
        raise UnsupportedPaymentMethod(payment_method.value)
    if payer_id is None and not (guest_name and guest_email):
        raise ValidationError("Name and email are required to vote as a guest")
    if vote_count < 1:
        raise ValidationError("Vote count must be at least 1")

    async with async_session() as db:
        async with db.begin():
            poll = await db.get(Poll, poll_id)
            if poll is None:
                raise ValidationError("Poll not found")
            contestant = await db.get(Contestant, contestant_id)
            if contestant is None or contestant.poll_id != poll.id:
                raise ValidationError("Contestant not found in this poll")

            ref = PaymentReference(
                id=generate_reference(),
                payer_id=payer_id,
                guest_name=guest_name,
                guest_email=guest_email,
                amount_minor_units=vote_count * poll.price_per_vote,
                purpose=Purpose.VOTE.value,
                payment_method=payment_method.value,
                poll_id=poll.id,
                contestant_id=contestant.id,
                vote_count=vote_count,
                settled=False,
                ticket_id=None,
            )
            db.add(ref)

    logger.info("Created vote reference %s for poll %s (%s votes)", ref.id, poll_id, vote_count)
    return ref


def has_ticket_metadata(metadata: Any) -> bool:
    return isinstance(metadata, dict) and all(metadata.get(key) for key in METADATA_KEYS)


async def record_reference_from_metadata(
    reference_id: str,
    metadata: dict[str, Any],
    amount_minor_units: int,
    payment_method: PaymentMethod = PaymentMethod.PAYSTACK,
) -> None:
    """
    Record a reference the client never created, from the charge metadata.
    `payment_method` is the provider that reported the charge.
    A concurrent delivery that already recorded it is not an error.
    """
    event_id = metadata["eventId"]
    ticket_type = metadata["ticketType"]

    ticket_price = metadata.get("ticketPrice")
    if not isinstance(ticket_price, int):
        async with async_session() as db:
            ticket_price = (
                await db.execute(
                    select(TicketPricing.price).where(
                        TicketPricing.event_id == event_id,
                        TicketPricing.ticket_type == ticket_type,
                    )
                )
            ).scalar_one_or_none()
        if ticket_price is None:
            raise TicketTypeNotFound(ticket_type)

    fee = metadata.get("transactionFee")
    try:
        async with async_session() as db:
            async with db.begin():
                if await db.get(PaymentReference, reference_id) is not None:
                    return
                db.add(PaymentReference(
                    id=reference_id,
                    payer_id=metadata["userId"],
                    amount_minor_units=amount_minor_units,
                    purpose=Purpose.TICKET.value,
                    payment_method=payment_method.value,
                    event_id=event_id,
                    event_creator_id=metadata["eventCreatorId"],
                    ticket_type=ticket_type,
                    ticket_price=ticket_price,
                    transaction_fee=fee if isinstance(fee, int) else 0,
                    discount_code=metadata.get("discountCode") or None,
                    referral_code=metadata.get("referralCode") or None,
                    settled=False,
                    ticket_id=None,
                ))
    except IntegrityError:
        logger.info("Reference %s recorded by a concurrent delivery", reference_id)
        return

    logger.info("Recorded reference %s from charge metadata", reference_id)
