"""
Shared fixtures for the Spotix test-suite.

Settings are pinned through the environment before any spotix module is
imported, so every test talks to a throwaway SQLite file and no real
gateway or mail credentials.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="spotix-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/spotix-test.db"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_spotix"
os.environ["PAYSTACK_WEBHOOK_SECRET"] = "whsec_test_spotix"
os.environ["MONNIFY_API_KEY"] = "MK_TEST_KEY"
os.environ["MONNIFY_SECRET_KEY"] = "monnify_test_secret"
os.environ["MONNIFY_CONTRACT_CODE"] = "1234567890"
os.environ["AUTH_SECRET_KEY"] = "spotix-test-auth-secret"
os.environ["MJ_APIKEY_PUBLIC"] = ""
os.environ["MJ_APIKEY_PRIVATE"] = ""

from datetime import datetime, timedelta, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from spotix import models  # noqa: E402,F401
from spotix.auth import create_access_token  # noqa: E402
from spotix.database import Base, async_session, engine  # noqa: E402
from spotix.domain import InitializeResult, PaymentMethod, VerifyOutcome, VerifyResult  # noqa: E402
from spotix.gateways import PaymentGateway, gateway_registry  # noqa: E402
from spotix.models import (  # noqa: E402
    Contestant,
    Discount,
    Event,
    PaymentReference,
    Poll,
    TicketPricing,
    User,
    Wallet,
)

BUYER_ID = "user-ada"
OTHER_ID = "user-bayo"
CREATOR_ID = "creator-tunde"
EVENT_ID = "event-jazz"


# ============================================================
#                        DATABASE
# ============================================================
@pytest.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # pooled aiosqlite connections are bound to this test's loop
    await engine.dispose()


@pytest.fixture
async def world(database):
    """
    Buyer with ₦50 in their wallet, a second user, and one event with a
    limited Regular tier, an unlimited VIP tier, a Free tier and SAVE10.
    """
    async with async_session() as db:
        async with db.begin():
            db.add_all([
                User(id=BUYER_ID, username="ada.obi", full_name="Ada Obi", email="ada@example.com"),
                User(id=OTHER_ID, username="bayo", full_name="Bayo Lawal", email="bayo@example.com"),
                User(id=CREATOR_ID, username="tunde", full_name="Tunde Events", email="tunde@example.com"),
                User(id="user-nameless", username=None, full_name="No Name", email="nn@example.com"),
            ])
            db.add(Wallet(user_id=BUYER_ID, balance=5000))
            db.add(Event(
                id=EVENT_ID,
                creator_id=CREATOR_ID,
                name="Lagos Jazz Night",
                venue="Eko Hotel",
                event_type="Concert",
                event_date="2026-12-20",
                event_start="19:00",
                tickets_sold=0,
                total_revenue=0,
            ))
            db.add_all([
                TicketPricing(event_id=EVENT_ID, ticket_type="Regular", price=2000, available_tickets=10),
                TicketPricing(event_id=EVENT_ID, ticket_type="VIP", price=10000, available_tickets=None),
                TicketPricing(event_id=EVENT_ID, ticket_type="Free", price=0, available_tickets=None),
            ])
            db.add(Discount(
                event_id=EVENT_ID,
                code="SAVE10",
                discount_type="percentage",
                discount_value=10,
                max_uses=10,
                used_count=5,
                expiry_date=datetime.now(timezone.utc) + timedelta(days=7),
                active=True,
            ))
            db.add(Poll(id="poll-queen", creator_id=CREATOR_ID, name="Campus Queen", price_per_vote=5000,
                        poll_count=0, poll_amount=0))
            db.add(Contestant(id="contestant-amaka", poll_id="poll-queen", name="Amaka", votes=0))

    return SimpleNamespace(
        buyer_id=BUYER_ID,
        other_id=OTHER_ID,
        creator_id=CREATOR_ID,
        event_id=EVENT_ID,
        poll_id="poll-queen",
        contestant_id="contestant-amaka",
    )


async def fetch(model, key):
    async with async_session() as db:
        return await db.get(model, key)


async def count(model, *criteria) -> int:
    async with async_session() as db:
        return (await db.execute(select(func.count()).select_from(model).where(*criteria))).scalar_one()


async def set_values(model, key, **values):
    async with async_session() as db:
        async with db.begin():
            row = await db.get(model, key)
            for name, value in values.items():
                setattr(row, name, value)


async def pricing_for(ticket_type: str) -> TicketPricing:
    async with async_session() as db:
        return (
            await db.execute(
                select(TicketPricing).where(
                    TicketPricing.event_id == EVENT_ID,
                    TicketPricing.ticket_type == ticket_type,
                )
            )
        ).scalar_one()


async def insert_reference(**overrides) -> PaymentReference:
    fields = dict(
        id="SPTX-REF-test-0001",
        payer_id=BUYER_ID,
        amount_minor_units=2000,
        purpose="ticket",
        payment_method="paystack",
        event_id=EVENT_ID,
        event_creator_id=CREATOR_ID,
        ticket_type="Regular",
        ticket_price=2000,
        transaction_fee=0,
        settled=False,
        ticket_id=None,
    )
    fields.update(overrides)
    async with async_session() as db:
        async with db.begin():
            ref = PaymentReference(**fields)
            db.add(ref)
    return ref


# ============================================================
#                       HTTP / AUTH
# ============================================================
def bearer(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
async def client(database):
    from spotix.main import app

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class FakeGateway(PaymentGateway):
    """Scripted gateway: replays outcomes in order, repeating the last one."""

    def __init__(self, *outcomes, amount=None, reason="", init_error=None):
        super().__init__()
        self.method = PaymentMethod.PAYSTACK
        self.outcomes = list(outcomes) or [VerifyOutcome.SETTLED]
        self.amount = amount
        self.reason = reason
        self.init_error = init_error
        self.verify_calls = 0
        self.initialized = []

    async def initialize(self, amount_minor_units, email, callback_url=None, metadata=None, reference=None):
        if self.init_error is not None:
            raise self.init_error
        self.initialized.append((amount_minor_units, email, reference))
        ref = reference or "fake-ref"
        return InitializeResult(
            status=True,
            provider_reference=ref,
            redirect_url=f"https://checkout.test/{ref}",
            payload={
                "status": True,
                "message": "Authorization URL created",
                "data": {"authorization_url": f"https://checkout.test/{ref}", "reference": ref},
            },
        )

    async def verify(self, reference):
        self.verify_calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        return VerifyResult(
            outcome,
            reason=self.reason,
            amount_minor_units=self.amount,
            payload={"status": outcome is VerifyOutcome.SETTLED, "data": {"reference": reference}},
        )


@pytest.fixture
def use_gateway(client):
    """Route every payment method to the given fake gateway."""
    from spotix.main import app

    def _use(gateway: PaymentGateway) -> PaymentGateway:
        app.dependency_overrides[gateway_registry] = lambda: (lambda method: gateway)
        return gateway

    return _use
