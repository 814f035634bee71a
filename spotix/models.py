from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from spotix.database import Base


# ============================================================
#                           USER
# ============================================================
class User(Base):
    __tablename__ = "users"

    # identity provider uid
    id = Column(String, primary_key=True)
    username = Column(String, unique=True, index=True, nullable=True)
    full_name = Column(String, default="")
    email = Column(String, default="")
    referral_code = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    wallet = relationship("Wallet", back_populates="user", uselist=False)


# ============================================================
#                 WALLET  (wallets/{userId})
# ============================================================
class Wallet(Base):
    __tablename__ = "wallets"

    user_id = Column(String, ForeignKey("users.id"), primary_key=True)
    balance = Column(Integer, nullable=False, default=0)
    currency = Column(String, default="NGN")

    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User", back_populates="wallet")


# ============================================================
#              TRANSACTION  (transactions/{txId})
# ============================================================
class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)

    type = Column(String, nullable=False)  # debit | credit
    amount = Column(Integer, nullable=False)
    currency = Column(String, default="NGN")
    description = Column(String, default="")
    reference = Column(String, index=True)
    status = Column(String, default="completed")

    created_at = Column(DateTime(timezone=True), server_default=func.now())


# ============================================================
#        EVENT  (events/{creatorId}/userEvents/{eventId})
# ============================================================
class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True)
    creator_id = Column(String, index=True, nullable=False)

    name = Column(String, nullable=False)
    venue = Column(String, default="")
    event_type = Column(String, default="")
    event_date = Column(String, default="")
    event_end_date = Column(String, default="")
    event_start = Column(String, default="")
    event_end = Column(String, default="")

    tickets_sold = Column(Integer, nullable=False, default=0)
    total_revenue = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    pricing = relationship("TicketPricing", back_populates="event")


class TicketPricing(Base):
    __tablename__ = "ticket_pricing"
    __table_args__ = (UniqueConstraint("event_id", "ticket_type"),)

    id = Column(Integer, primary_key=True)
    event_id = Column(String, ForeignKey("events.id"), nullable=False)

    ticket_type = Column(String, nullable=False)
    price = Column(Integer, nullable=False)
    # None means unlimited
    available_tickets = Column(Integer, nullable=True)

    event = relationship("Event", back_populates="pricing")


# ============================================================
#                  DISCOUNT  (.../discounts/{id})
# ============================================================
class Discount(Base):
    __tablename__ = "discounts"
    __table_args__ = (UniqueConstraint("event_id", "code"),)

    id = Column(Integer, primary_key=True)
    event_id = Column(String, ForeignKey("events.id"), index=True, nullable=False)

    code = Column(String, nullable=False)
    discount_type = Column(String, nullable=False)  # percentage | fixed
    discount_value = Column(Integer, nullable=False)
    max_uses = Column(Integer, nullable=False)
    used_count = Column(Integer, nullable=False, default=0)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    active = Column(Boolean, nullable=False, default=True)


# ============================================================
#   PAYMENT REFERENCE  (references/{userId}/userReferences/{ref})
# ============================================================
class PaymentReference(Base):
    __tablename__ = "payment_references"

    id = Column(String, primary_key=True)

    payer_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)
    guest_name = Column(String, nullable=True)
    guest_email = Column(String, nullable=True)

    amount_minor_units = Column(Integer, nullable=False)
    purpose = Column(String, nullable=False)  # ticket | vote | merch
    payment_method = Column(String, nullable=False)

    # ticket purpose
    event_id = Column(String, nullable=True)
    event_creator_id = Column(String, nullable=True)
    ticket_type = Column(String, nullable=True)
    ticket_price = Column(Integer, nullable=True)
    transaction_fee = Column(Integer, nullable=False, default=0)
    discount_code = Column(String, nullable=True)
    referral_code = Column(String, nullable=True)

    # vote purpose
    poll_id = Column(String, nullable=True)
    contestant_id = Column(String, nullable=True)
    vote_count = Column(Integer, nullable=True)

    settled = Column(Boolean, nullable=False, default=False)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    ticket_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


# ============================================================
#       TICKETS  (attendees + TicketHistory, same payload)
# ============================================================
class TicketRecordMixin:
    # shared with the ticket-history copy
    doc_id = Column(String, primary_key=True)
    ticket_id = Column(String, unique=True, index=True, nullable=False)
    payment_reference_id = Column(String, unique=True, nullable=False)

    event_id = Column(String, index=True, nullable=False)
    event_creator_id = Column(String, nullable=False)
    owner_id = Column(String, index=True, nullable=False)

    full_name = Column(String, default="")
    email = Column(String, default="")
    ticket_type = Column(String, nullable=False)

    price = Column(Integer, nullable=False)
    original_price = Column(Integer, nullable=False)
    transaction_fee = Column(Integer, nullable=False, default=0)
    total_amount = Column(Integer, nullable=False)
    payment_method = Column(String, nullable=False)
    discount_code = Column(String, nullable=True)
    referral_code = Column(String, nullable=True)

    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class Attendee(TicketRecordMixin, Base):
    __tablename__ = "attendees"


class TicketHistory(TicketRecordMixin, Base):
    __tablename__ = "ticket_history"

    event_name = Column(String, default="")


# ============================================================
#                 REFERRALS  (referrals/{code})
# ============================================================
class Referral(Base):
    __tablename__ = "referrals"

    code = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), unique=True, nullable=False)
    username = Column(String, default="")
    full_name = Column(String, default="")

    ref_gain = Column(Integer, nullable=False, default=0)
    total_withdrawn = Column(Integer, nullable=False, default=0)
    total_referrals = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)

    last_referral_at = Column(DateTime(timezone=True), nullable=True)
    last_withdrawal_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    referred_users = relationship("ReferredUser", back_populates="referral")


class ReferredUser(Base):
    __tablename__ = "referred_users"

    id = Column(Integer, primary_key=True)
    referral_code = Column(String, ForeignKey("referrals.code"), nullable=False)
    # a user can only ever be referred once
    user_id = Column(String, unique=True, nullable=False)
    username = Column(String, default="")
    email = Column(String, default="")
    full_name = Column(String, default="")

    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    referral = relationship("Referral", back_populates="referred_users")


# ============================================================
#                     POLLS / VOTING
# ============================================================
class Poll(Base):
    __tablename__ = "polls"

    id = Column(String, primary_key=True)
    creator_id = Column(String, index=True, nullable=False)
    name = Column(String, default="")
    price_per_vote = Column(Integer, nullable=False)

    poll_count = Column(Integer, nullable=False, default=0)
    poll_amount = Column(Integer, nullable=False, default=0)

    contestants = relationship("Contestant", back_populates="poll")


class Contestant(Base):
    __tablename__ = "contestants"

    id = Column(String, primary_key=True)
    poll_id = Column(String, ForeignKey("polls.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    votes = Column(Integer, nullable=False, default=0)

    poll = relationship("Poll", back_populates="contestants")


class PollEntry(Base):
    __tablename__ = "poll_entries"

    id = Column(Integer, primary_key=True)
    poll_id = Column(String, ForeignKey("polls.id"), index=True, nullable=False)
    contestant_id = Column(String, nullable=False)
    payment_reference_id = Column(String, unique=True, nullable=False)

    voter_id = Column(String, nullable=True)
    guest_email = Column(String, nullable=True)
    vote_count = Column(Integer, nullable=False)
    amount = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
