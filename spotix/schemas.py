from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from spotix.domain import PaymentMethod


class CamelModel(BaseModel):
    # clients send camelCase, handlers read snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InitializePayment(CamelModel):
    amount: int = Field(ge=100, le=10_000_000)
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    metadata: Optional[dict[str, Any]] = None
    reference: Optional[str] = None
    callback_url: Optional[str] = None
    provider: PaymentMethod = PaymentMethod.PAYSTACK


class CreateTicketReference(CamelModel):
    event_id: str
    event_creator_id: str
    ticket_type: str
    ticket_price: int = Field(ge=0)
    payment_method: PaymentMethod = PaymentMethod.PAYSTACK
    transaction_fee: int = Field(default=0, ge=0)
    discount_code: Optional[str] = None
    referral_code: Optional[str] = None


class CreateFreeReference(CamelModel):
    event_id: str
    event_creator_id: str
    ticket_type: str
    discount_code: Optional[str] = None
    referral_code: Optional[str] = None


class CreateVoteReference(CamelModel):
    poll_id: str
    contestant_id: str
    vote_count: int = Field(ge=1)
    payment_method: PaymentMethod = PaymentMethod.PAYSTACK
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None


class IssueTicket(CamelModel):
    user_id: str
    event_id: str
    event_creator_id: str
    ticket_type: str
    ticket_price: int = Field(ge=0)
    payment_method: PaymentMethod
    payment_reference: str
    transaction_fee: int = Field(default=0, ge=0)
    discount_code: Optional[str] = None
    referral_code: Optional[str] = None


class ValidateDiscount(CamelModel):
    discount_code: str
    event_id: str
    ticket_price: Optional[int] = Field(default=None, ge=0)


class CreditReferral(CamelModel):
    referral_code: str
