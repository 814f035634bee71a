import asyncio
import logging
from datetime import datetime, timezone

from spotix import notifications
from spotix.domain import PaymentMethod, Ticket


def ticket(email="ada@example.com") -> Ticket:
    return Ticket(
        ticket_id="SPTX-TX-12A3456B78",
        doc_id="doc-1",
        owner_id="user-ada",
        event_id="event-jazz",
        event_creator_id="creator-tunde",
        ticket_type="Regular",
        price=2000,
        original_price=2000,
        transaction_fee=150,
        total_amount=2150,
        payment_method=PaymentMethod.WALLET,
        payment_reference_id="SPTX-REF-1",
        full_name="Ada Obi",
        email=email,
        verified=False,
        created_at=datetime(2026, 10, 19, tzinfo=timezone.utc),
    )


async def test_skipped_without_mailjet_keys():
    assert await notifications.send_ticket_confirmation(ticket(), "Lagos Jazz Night") is False


async def test_skipped_without_recipient(monkeypatch):
    monkeypatch.setattr(notifications.config, "MJ_APIKEY_PUBLIC", "pub")
    monkeypatch.setattr(notifications.config, "MJ_APIKEY_PRIVATE", "priv")

    assert await notifications.send_ticket_confirmation(ticket(email=""), "Lagos Jazz Night") is False


async def test_failed_email_is_logged_not_raised(monkeypatch, caplog):
    async def broken(ticket, event_name=""):
        raise RuntimeError("mailjet down")

    monkeypatch.setattr(notifications, "send_ticket_confirmation", broken)

    with caplog.at_level(logging.ERROR, logger="spotix.notifications"):
        task = notifications.notify_ticket_issued(ticket(), "Lagos Jazz Night")
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

    assert "Confirmation email failed" in caplog.text
    assert task not in notifications._pending


def test_no_running_loop_is_tolerated():
    assert notifications.notify_ticket_issued(ticket()) is None
