"""
Discount code validation and price adjustment.

Validation here is advisory: the authoritative usedCount increment happens
inside the settlement transaction, so two buyers can both pass validation for
the last remaining use.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from spotix.database import async_session
from spotix.domain import DiscountQuote, DiscountType
from spotix.errors import DiscountInvalid, DiscountNotFound
from spotix.models import Discount

logger = logging.getLogger(__name__)

INACTIVE = "INACTIVE"
EXPIRED = "EXPIRED"
LIMIT_REACHED = "LIMIT_REACHED"


def apply_discount(price: int, discount_type: DiscountType | str, value: int) -> int:
    """
    Discount amount in minor units, never more than the price
    """
    discount_type = DiscountType(discount_type)
    if discount_type is DiscountType.PERCENTAGE:
        return price * min(max(value, 0), 100) // 100
    return min(max(value, 0), price)


def _as_aware(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def check_discount(discount: Discount | None, now: datetime | None = None) -> Discount:
    """Raise DiscountInvalid for the first failing check."""
    if discount is None:
        raise DiscountNotFound("")
    if not discount.active:
        raise DiscountInvalid(INACTIVE, "This discount code is no longer active")

    now = now or datetime.now(timezone.utc)
    if discount.expiry_date is not None and _as_aware(now) > _as_aware(discount.expiry_date):
        raise DiscountInvalid(EXPIRED, "This discount code has expired")
    if discount.used_count >= discount.max_uses:
        raise DiscountInvalid(LIMIT_REACHED, "This discount code has reached its maximum usage limit")
    return discount


async def find_discount(db: AsyncSession, event_id: str, code: str, lock: bool = False) -> Discount | None:
    stmt = select(Discount).where(Discount.event_id == event_id, Discount.code == code.strip())
    if lock:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


def quote(discount: Discount, price: int) -> DiscountQuote:
    amount = apply_discount(price, discount.discount_type, discount.discount_value)
    return DiscountQuote(
        code=discount.code,
        discount_type=DiscountType(discount.discount_type),
        discount_value=discount.discount_value,
        discount_amount=amount,
        final_price=price - amount,
    )


async def validate_discount(
    code: str,
    event_id: str,
    price: int | None = None,
    now: datetime | None = None,
) -> DiscountQuote:
    """
    Check a code against the event's discounts.
    Returns the quote for `price` (0 when no price given).
    """
    async with async_session() as db:
        discount = check_discount(await find_discount(db, event_id, code), now)

    logger.info("Discount %s valid for event %s", discount.code, event_id)
    return quote(discount, price or 0)
