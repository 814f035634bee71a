import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import FakeGateway
from spotix.domain import PaymentMethod, Purpose, SettlementResult, VerifyOutcome
from spotix.polling import PollStatus, poll_until_settled

PENDING = VerifyOutcome.PENDING


async def test_timeout_never_settles():
    gateway = FakeGateway(PENDING)
    settle = AsyncMock()

    result = await poll_until_settled("SPTX-REF-1", gateway, interval=0.01, timeout=0.05, settle=settle)

    assert result.status is PollStatus.TIMEOUT
    assert result.reference_id == "SPTX-REF-1"
    assert gateway.verify_calls >= 1
    settle.assert_not_awaited()


async def test_failed_charge_stops_polling():
    gateway = FakeGateway(PENDING, VerifyOutcome.FAILED, reason="Declined")
    settle = AsyncMock()

    result = await poll_until_settled("SPTX-REF-1", gateway, interval=0.01, timeout=1, settle=settle)

    assert result.status is PollStatus.FAILED
    assert result.reason == "Declined"
    assert gateway.verify_calls == 2
    settle.assert_not_awaited()


async def test_settles_once_gateway_confirms():
    gateway = FakeGateway(PENDING, PENDING, VerifyOutcome.SETTLED, amount=2150)
    settled = SettlementResult("SPTX-REF-1", Purpose.TICKET)
    settle = AsyncMock(return_value=settled)

    result = await poll_until_settled("SPTX-REF-1", gateway, interval=0.01, timeout=1, settle=settle)

    assert result.status is PollStatus.SETTLED
    assert result.settlement is settled
    assert result.attempts == 3
    settle.assert_awaited_once_with(
        "SPTX-REF-1", context=None, paid_amount=2150, rail=PaymentMethod.PAYSTACK
    )


async def test_slow_settlement_is_not_cut_off_by_the_deadline():
    gateway = FakeGateway(VerifyOutcome.SETTLED)

    async def slow_settle(reference_id, **kwargs):
        await asyncio.sleep(0.1)
        return SettlementResult(reference_id, Purpose.TICKET)

    result = await poll_until_settled("SPTX-REF-1", gateway, interval=0.01, timeout=0.05, settle=slow_settle)

    assert result.status is PollStatus.SETTLED


async def test_cancellation_propagates():
    gateway = FakeGateway(PENDING)
    settle = AsyncMock()
    task = asyncio.create_task(
        poll_until_settled("SPTX-REF-1", gateway, interval=0.01, timeout=10, settle=settle)
    )
    await asyncio.sleep(0.05)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    settle.assert_not_awaited()
