"""Typed records passed between the gateway, settlement and HTTP layers.

Gateway metadata and stored documents are converted into these explicit
records at the boundary so the settlement engine never reads open maps.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class PaymentMethod(str, Enum):
    PAYSTACK = "paystack"
    MONNIFY = "monnify"
    WALLET = "wallet"
    AGENT = "agent"
    BITCOIN = "bitcoin"
    FREE = "free"


class Purpose(str, Enum):
    TICKET = "ticket"
    VOTE = "vote"
    MERCH = "merch"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class VerifyOutcome(str, Enum):
    SETTLED = "settled"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class VerifyResult:
    """Normalised answer of a gateway verify call."""

    outcome: VerifyOutcome
    reason: str = ""
    amount_minor_units: int | None = None
    payload: dict[str, Any] | None = None
    status_code: int = 200


@dataclass(frozen=True)
class InitializeResult:
    status: bool
    provider_reference: str
    redirect_url: str | None
    payload: dict[str, Any]


@dataclass(frozen=True)
class SettlementContext:
    """What the payer claims to be buying; checked against the stored reference."""

    payer_id: str
    event_id: str
    event_creator_id: str
    ticket_type: str
    ticket_price: int
    payment_method: PaymentMethod
    transaction_fee: int = 0
    discount_code: str | None = None
    referral_code: str | None = None

    @classmethod
    def from_reference(cls, ref) -> "SettlementContext":
        return cls(
            payer_id=ref.payer_id,
            event_id=ref.event_id,
            event_creator_id=ref.event_creator_id,
            ticket_type=ref.ticket_type,
            ticket_price=ref.ticket_price,
            payment_method=PaymentMethod(ref.payment_method),
            transaction_fee=ref.transaction_fee or 0,
            discount_code=ref.discount_code,
            referral_code=ref.referral_code,
        )


@dataclass(frozen=True)
class DiscountQuote:
    code: str
    discount_type: DiscountType
    discount_value: int
    discount_amount: int
    final_price: int


@dataclass(frozen=True)
class Ticket:
    ticket_id: str
    doc_id: str
    owner_id: str
    event_id: str
    event_creator_id: str
    ticket_type: str
    price: int
    original_price: int
    transaction_fee: int
    total_amount: int
    payment_method: PaymentMethod
    payment_reference_id: str
    full_name: str
    email: str
    verified: bool
    created_at: datetime
    discount_code: str | None = None
    referral_code: str | None = None

    @classmethod
    def from_record(cls, record) -> "Ticket":
        return cls(
            ticket_id=record.ticket_id,
            doc_id=record.doc_id,
            owner_id=record.owner_id,
            event_id=record.event_id,
            event_creator_id=record.event_creator_id,
            ticket_type=record.ticket_type,
            price=record.price,
            original_price=record.original_price,
            transaction_fee=record.transaction_fee,
            total_amount=record.total_amount,
            payment_method=PaymentMethod(record.payment_method),
            payment_reference_id=record.payment_reference_id,
            full_name=record.full_name or "",
            email=record.email or "",
            verified=record.verified,
            created_at=record.created_at,
            discount_code=record.discount_code,
            referral_code=record.referral_code,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticketId": self.ticket_id,
            "ticketReference": self.payment_reference_id,
            "uid": self.owner_id,
            "eventId": self.event_id,
            "eventCreatorId": self.event_creator_id,
            "ticketType": self.ticket_type,
            "ticketPrice": self.price,
            "originalPrice": self.original_price,
            "transactionFee": self.transaction_fee,
            "totalAmount": self.total_amount,
            "paymentMethod": self.payment_method.value,
            "fullName": self.full_name,
            "email": self.email,
            "verified": self.verified,
            "discountCode": self.discount_code,
            "purchasedAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class VoteReceipt:
    payment_reference_id: str
    poll_id: str
    contestant_id: str
    vote_count: int
    amount: int


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of settle(); already_settled marks an idempotent replay."""

    reference_id: str
    purpose: Purpose
    already_settled: bool = False
    ticket: Ticket | None = None
    vote: VoteReceipt | None = None
