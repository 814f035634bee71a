"""
Ticket confirmation emails through Mailjet's send API.

Delivery is fire-and-forget: a failed email is logged and never reaches the
settlement that scheduled it.
"""

import asyncio
import logging
from datetime import datetime

import httpx

from spotix import config
from spotix.domain import Ticket
from spotix.utils import format_naira

logger = logging.getLogger(__name__)

MAILJET_SEND_URL = "https://api.mailjet.com/v3.1/send"

# strong references so scheduled sends are not garbage collected mid-flight
_pending: set[asyncio.Task] = set()


async def send_ticket_confirmation(ticket: Ticket, event_name: str = "") -> bool:
    if not (config.MJ_APIKEY_PUBLIC and config.MJ_APIKEY_PRIVATE):
        logger.info("Mailjet not configured, skipping confirmation for %s", ticket.ticket_id)
        return False
    if not ticket.email:
        logger.warning("No email on ticket %s, skipping confirmation", ticket.ticket_id)
        return False

    message = {
        "From": {"Email": config.MAIL_FROM, "Name": "Spotix"},
        "To": [{"Email": ticket.email, "Name": ticket.full_name or "Spotix Customer"}],
        "Subject": f"Your ticket for {event_name or 'your event'}",
        "Variables": {
            "year": str(datetime.now().year),
            "name": ticket.full_name,
            "ticket_id": ticket.ticket_id,
            "ticket_reference": ticket.payment_reference_id,
            "ticket_type": ticket.ticket_type,
            "event_name": event_name,
            "price": format_naira(ticket.total_amount),
            "payment_method": ticket.payment_method.value,
        },
        "TemplateLanguage": True,
    }
    if config.MJ_TICKET_TEMPLATE_ID:
        message["TemplateID"] = config.MJ_TICKET_TEMPLATE_ID

    async with httpx.AsyncClient(timeout=config.REQUEST_TIMEOUT) as client:
        res = await client.post(
            MAILJET_SEND_URL,
            json={"Messages": [message]},
            auth=(config.MJ_APIKEY_PUBLIC, config.MJ_APIKEY_PRIVATE),
        )
    res.raise_for_status()

    logger.info("Confirmation email sent for %s to %s", ticket.ticket_id, ticket.email)
    return True


def _log_outcome(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Confirmation email failed: %s", exc, exc_info=exc)


def notify_ticket_issued(ticket: Ticket, event_name: str = "") -> asyncio.Task | None:
    """Schedule the confirmation without waiting for it."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("No running loop, confirmation for %s not sent", ticket.ticket_id)
        return None

    task = loop.create_task(send_ticket_confirmation(ticket, event_name))
    _pending.add(task)
    task.add_done_callback(_log_outcome)
    return task
