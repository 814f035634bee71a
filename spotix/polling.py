"""
Client-side confirmation: poll a gateway until the charge resolves, then settle.

The whole poll is bounded by one deadline. Running out of time is not a
failure: the webhook may still settle the reference later, so the caller gets
a TIMEOUT result with the reference to quote to support.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from spotix import config
from spotix.domain import SettlementResult, VerifyOutcome, VerifyResult
from spotix.gateways import PaymentGateway
from spotix.settlement import settle_with_retry

logger = logging.getLogger(__name__)

Settler = Callable[..., Awaitable[SettlementResult]]


class PollStatus(str, Enum):
    SETTLED = "settled"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class PollResult:
    status: PollStatus
    reference_id: str
    settlement: SettlementResult | None = None
    reason: str = ""
    attempts: int = 0


async def poll_until_settled(
    reference_id: str,
    gateway: PaymentGateway,
    interval: float = config.POLL_INTERVAL,
    timeout: float = config.POLL_TIMEOUT,
    settle: Settler = settle_with_retry,
    context=None,
) -> PollResult:
    """
    Verify `reference_id` every `interval` seconds for at most `timeout`
    seconds. Settlement runs only after the gateway reports the charge as
    settled, and is not subject to the polling deadline.
    """
    attempts = 0

    async def _wait_for_outcome() -> VerifyResult:
        nonlocal attempts
        while True:
            attempts += 1
            result = await gateway.verify(reference_id)
            if result.outcome is not VerifyOutcome.PENDING:
                return result
            logger.debug(
                "Reference %s still pending (attempt %s, %s)",
                reference_id, attempts, result.reason or "no reason",
            )
            await asyncio.sleep(interval)

    try:
        verified = await asyncio.wait_for(_wait_for_outcome(), timeout)
    except asyncio.TimeoutError:
        logger.warning("Polling for %s timed out after %s attempts", reference_id, attempts)
        return PollResult(PollStatus.TIMEOUT, reference_id, attempts=attempts)

    if verified.outcome is VerifyOutcome.FAILED:
        logger.info("Reference %s failed at the gateway: %s", reference_id, verified.reason)
        return PollResult(PollStatus.FAILED, reference_id, reason=verified.reason, attempts=attempts)

    settlement = await settle(
        reference_id,
        context=context,
        paid_amount=verified.amount_minor_units,
        rail=gateway.method,
    )
    return PollResult(PollStatus.SETTLED, reference_id, settlement=settlement, attempts=attempts)
