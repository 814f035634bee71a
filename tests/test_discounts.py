from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from spotix.discounts import (
    EXPIRED,
    INACTIVE,
    LIMIT_REACHED,
    apply_discount,
    check_discount,
    validate_discount,
)
from spotix.domain import DiscountType
from spotix.errors import DiscountInvalid, DiscountNotFound

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def discount(**overrides):
    fields = dict(
        code="SAVE10",
        discount_type="percentage",
        discount_value=10,
        max_uses=10,
        used_count=5,
        expiry_date=NOW + timedelta(days=1),
        active=True,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestApplyDiscount:
    def test_percentage(self):
        assert apply_discount(2000, DiscountType.PERCENTAGE, 10) == 200
        assert apply_discount(2000, "percentage", 150) == 2000

    def test_fixed_is_capped_at_price(self):
        assert apply_discount(2000, DiscountType.FIXED, 500) == 500
        assert apply_discount(2000, DiscountType.FIXED, 5000) == 2000

    def test_negative_values_discount_nothing(self):
        assert apply_discount(2000, DiscountType.FIXED, -100) == 0
        assert apply_discount(2000, DiscountType.PERCENTAGE, -5) == 0


class TestCheckDiscount:
    def test_valid_code_passes(self):
        code = discount()
        assert check_discount(code, NOW) is code

    def test_unknown_code(self):
        with pytest.raises(DiscountNotFound) as exc:
            check_discount(None, NOW)
        assert exc.value.reason == "NOT_FOUND"

    def test_inactive_code(self):
        with pytest.raises(DiscountInvalid) as exc:
            check_discount(discount(active=False), NOW)
        assert exc.value.reason == INACTIVE

    def test_expired_code(self):
        with pytest.raises(DiscountInvalid) as exc:
            check_discount(discount(expiry_date=NOW - timedelta(seconds=1)), NOW)
        assert exc.value.reason == EXPIRED

    def test_naive_expiry_from_sqlite_is_treated_as_utc(self):
        naive = (NOW + timedelta(hours=1)).replace(tzinfo=None)
        assert check_discount(discount(expiry_date=naive), NOW)

    def test_usage_limit_reached(self):
        with pytest.raises(DiscountInvalid) as exc:
            check_discount(discount(used_count=10), NOW)
        assert exc.value.reason == LIMIT_REACHED

    def test_expiry_is_checked_before_usage(self):
        expired_and_used_up = discount(used_count=10, expiry_date=NOW - timedelta(days=1))
        with pytest.raises(DiscountInvalid) as exc:
            check_discount(expired_and_used_up, NOW)
        assert exc.value.reason == EXPIRED


class TestValidateDiscount:
    async def test_save10_quote(self, world):
        quote = await validate_discount("SAVE10", world.event_id, price=2000)

        assert quote.code == "SAVE10"
        assert quote.discount_amount == 200
        assert quote.final_price == 1800

    async def test_code_is_scoped_to_its_event(self, world):
        with pytest.raises(DiscountNotFound):
            await validate_discount("SAVE10", "another-event", price=2000)
