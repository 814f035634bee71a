"""
Referral ledger.

Credit is earned per referred signup (not per ticket) and only leaves the
ledger through a withdrawal into the owner's wallet.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from spotix import config
from spotix.database import async_session
from spotix.errors import ReferralInvalid, UserNotFound, ValidationError
from spotix.models import Referral, ReferredUser, Transaction, User, Wallet
from spotix.utils import generate_referral_code

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


async def create_referral_code(user_id: str) -> str:
    """Return the user's referral code, creating one from their username."""
    async with async_session() as db:
        async with db.begin():
            user = await db.get(User, user_id)
            if user is None:
                raise UserNotFound(user_id)
            if not user.username:
                raise ValidationError(
                    "Username is required to generate a referral code. Please set your username first."
                )

            existing = (
                await db.execute(select(Referral).where(Referral.user_id == user_id))
            ).scalar_one_or_none()
            if existing is not None:
                if user.referral_code != existing.code:
                    user.referral_code = existing.code
                return existing.code

            for _ in range(MAX_CODE_ATTEMPTS):
                code = generate_referral_code(user.username)
                if await db.get(Referral, code) is None:
                    break
            else:
                raise RuntimeError("Failed to generate unique referral code after multiple attempts")

            db.add(Referral(
                code=code,
                user_id=user_id,
                username=user.username,
                full_name=user.full_name or "",
            ))
            user.referral_code = code

    logger.info("Referral code %s created for %s", code, user_id)
    return code


async def credit_referral(referral_code: str, new_user_id: str) -> bool:
    """
    Credit the referrer for a new signup.
    Returns False when this user was already credited to a referrer.
    """
    try:
        async with async_session() as db:
            async with db.begin():
                referral = await db.get(Referral, referral_code.strip(), with_for_update=True)
                if referral is None or not referral.active:
                    raise ReferralInvalid("Invalid referral code")
                if referral.user_id == new_user_id:
                    raise ReferralInvalid("You cannot use your own referral code")

                new_user = await db.get(User, new_user_id)
                if new_user is None:
                    raise UserNotFound(new_user_id)

                already = (
                    await db.execute(select(ReferredUser).where(ReferredUser.user_id == new_user_id))
                ).scalar_one_or_none()
                if already is not None:
                    logger.warning("User %s was already referred via %s", new_user_id, already.referral_code)
                    return False

                db.add(ReferredUser(
                    referral_code=referral.code,
                    user_id=new_user_id,
                    username=new_user.username or "",
                    email=new_user.email or "",
                    full_name=new_user.full_name or "",
                ))
                await db.execute(
                    update(Referral)
                    .where(Referral.code == referral.code)
                    .values(
                        ref_gain=Referral.ref_gain + config.REFERRAL_BONUS,
                        total_referrals=Referral.total_referrals + 1,
                        last_referral_at=datetime.now(timezone.utc),
                    )
                )
    except IntegrityError:
        # concurrent credit for the same user won the unique constraint
        logger.warning("Duplicate referral credit for %s ignored", new_user_id)
        return False

    logger.info("Referral %s credited for signup %s", referral_code, new_user_id)
    return True


async def withdraw_referral(user_id: str) -> int:
    """
    Move the whole refGain into the owner's wallet.
    Returns the amount moved (0 when there is nothing to withdraw).
    """
    async with async_session() as db:
        async with db.begin():
            referral = (
                await db.execute(
                    select(Referral).where(Referral.user_id == user_id).with_for_update()
                )
            ).scalar_one_or_none()
            if referral is None:
                raise ReferralInvalid("No referral code for this user")

            amount = referral.ref_gain
            if amount <= 0:
                return 0

            await db.execute(
                update(Referral)
                .where(Referral.code == referral.code)
                .values(
                    ref_gain=Referral.ref_gain - amount,
                    total_withdrawn=Referral.total_withdrawn + amount,
                    last_withdrawal_at=datetime.now(timezone.utc),
                )
            )

            wallet = await db.get(Wallet, user_id, with_for_update=True)
            if wallet is None:
                db.add(Wallet(user_id=user_id, balance=amount))
            else:
                await db.execute(
                    update(Wallet)
                    .where(Wallet.user_id == user_id)
                    .values(balance=Wallet.balance + amount)
                )

            db.add(Transaction(
                id=uuid.uuid4().hex,
                user_id=user_id,
                type="credit",
                amount=amount,
                description="Referral Payment",
                reference=f"ref-withdraw-{referral.code}-{uuid.uuid4().hex[:8]}",
            ))

    logger.info("Referral withdrawal of %s kobo for %s", amount, user_id)
    return amount
