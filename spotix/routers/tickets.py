import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select

from spotix.auth import get_current_user_id
from spotix.database import async_session
from spotix.domain import PaymentMethod, SettlementContext, Ticket, VerifyOutcome
from spotix.errors import (
    Forbidden,
    PaymentFailed,
    PaymentPending,
    TicketNotFound,
    UnsupportedPaymentMethod,
)
from spotix.gateways import gateway_registry
from spotix.models import Attendee, Event
from spotix.references import get_reference
from spotix.schemas import IssueTicket
from spotix.settlement import settle_with_retry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ticket")

# rails that exist on the platform but cannot issue tickets here
OFFLINE_METHODS = (PaymentMethod.AGENT, PaymentMethod.BITCOIN)


async def _event_details(event_id: str) -> dict:
    async with async_session() as db:
        event = await db.get(Event, event_id)
    if event is None:
        return {}
    return {
        "eventName": event.name,
        "eventVenue": event.venue,
        "eventType": event.event_type,
        "eventDate": event.event_date,
        "eventEndDate": event.event_end_date,
        "eventStart": event.event_start,
        "eventEnd": event.event_end,
    }


@router.post("")
async def issue_ticket(
    body: IssueTicket,
    user_id: str = Depends(get_current_user_id),
    gateways=Depends(gateway_registry),
):
    if body.user_id != user_id:
        raise Forbidden("You can only buy tickets for your own account")
    if body.payment_method in OFFLINE_METHODS:
        raise UnsupportedPaymentMethod(body.payment_method.value)

    ref = await get_reference(body.payment_reference)
    if ref.payer_id != user_id:
        raise Forbidden("This payment reference belongs to another user")

    # gateway rails must be confirmed before anything is written
    verified = await gateways(body.payment_method).verify(body.payment_reference)
    if verified.outcome is VerifyOutcome.PENDING:
        raise PaymentPending(body.payment_reference)
    if verified.outcome is VerifyOutcome.FAILED:
        raise PaymentFailed(body.payment_reference, verified.reason)

    context = SettlementContext(
        payer_id=body.user_id,
        event_id=body.event_id,
        event_creator_id=body.event_creator_id,
        ticket_type=body.ticket_type,
        ticket_price=body.ticket_price,
        payment_method=body.payment_method,
        transaction_fee=body.transaction_fee,
        discount_code=body.discount_code or None,
        referral_code=body.referral_code or None,
    )
    result = await settle_with_retry(
        body.payment_reference,
        context,
        paid_amount=verified.amount_minor_units,
    )
    ticket = result.ticket
    if ticket is None:
        raise TicketNotFound()
    if ticket.owner_id != user_id:
        raise Forbidden("This ticket belongs to another user")

    return {
        "success": True,
        "alreadySettled": result.already_settled,
        "ticketId": ticket.ticket_id,
        "ticketReference": ticket.payment_reference_id,
        "userData": {"fullName": ticket.full_name, "email": ticket.email},
        "finalPrice": ticket.price,
        "discountApplied": ticket.discount_code is not None,
        "eventDetails": await _event_details(ticket.event_id),
    }


@router.get("")
async def get_ticket(
    ticketId: str,
    userId: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
):
    async with async_session() as db:
        record = (
            await db.execute(select(Attendee).where(Attendee.ticket_id == ticketId))
        ).scalar_one_or_none()

    if record is None or (userId and record.owner_id != userId):
        raise TicketNotFound()
    if user_id not in (record.owner_id, record.event_creator_id):
        raise Forbidden("Only the ticket owner or the event organizer can view this ticket")

    ticket = Ticket.from_record(record)
    return {
        "success": True,
        "ticket": ticket.to_dict(),
        "eventDetails": await _event_details(ticket.event_id),
    }
