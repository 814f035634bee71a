import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from spotix import config
from spotix.auth import get_current_user_id
from spotix.domain import PaymentMethod, VerifyOutcome
from spotix.errors import (
    AmountMismatch,
    Forbidden,
    PaymentFailed,
    ReferenceMismatch,
    UnsupportedPaymentMethod,
)
from spotix.gateways import gateway_registry
from spotix.polling import PollStatus, poll_until_settled
from spotix.references import (
    create_free_reference,
    create_ticket_reference,
    get_reference,
    reference_to_dict,
)
from spotix.schemas import CreateFreeReference, CreateTicketReference, InitializePayment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment")

# rails with a hosted checkout
CHECKOUT_METHODS = (PaymentMethod.PAYSTACK, PaymentMethod.MONNIFY)


@router.post("")
async def initialize_payment(body: InitializePayment, gateways=Depends(gateway_registry)):
    if body.provider not in CHECKOUT_METHODS:
        raise UnsupportedPaymentMethod(body.provider.value)
    if body.reference:
        ref = await get_reference(body.reference)
        if ref.payment_method != body.provider.value:
            raise ReferenceMismatch("payment method")
        if ref.amount_minor_units != body.amount:
            raise AmountMismatch(ref.amount_minor_units, body.amount)

    gateway = gateways(body.provider)
    result = await gateway.initialize(
        body.amount,
        body.email,
        callback_url=body.callback_url,
        metadata=body.metadata,
        reference=body.reference,
    )
    logger.info("Initialized %s charge %s", body.provider.value, result.provider_reference)
    return result.payload


@router.get("/verify")
async def verify_payment(
    reference: str,
    provider: PaymentMethod = PaymentMethod.PAYSTACK,
    gateways=Depends(gateway_registry),
):
    result = await gateways(provider).verify(reference)
    content = result.payload or {
        "status": False,
        "message": result.reason or "Verification pending",
    }
    return JSONResponse(status_code=result.status_code, content=content)


@router.post("/reference")
async def create_reference(body: CreateTicketReference, user_id: str = Depends(get_current_user_id)):
    ref = await create_ticket_reference(
        user_id,
        body.event_id,
        body.event_creator_id,
        body.ticket_type,
        body.ticket_price,
        payment_method=body.payment_method,
        transaction_fee=body.transaction_fee,
        discount_code=body.discount_code,
        referral_code=body.referral_code,
    )
    return reference_to_dict(ref)


@router.post("/reference/free")
async def create_free(body: CreateFreeReference, user_id: str = Depends(get_current_user_id)):
    ref = await create_free_reference(
        user_id,
        body.event_id,
        body.event_creator_id,
        body.ticket_type,
        discount_code=body.discount_code,
        referral_code=body.referral_code,
    )
    return reference_to_dict(ref)


@router.post("/confirm")
async def confirm_payment(
    reference: str,
    user_id: str = Depends(get_current_user_id),
    gateways=Depends(gateway_registry),
):
    ref = await get_reference(reference)
    if ref.payer_id != user_id:
        raise Forbidden("This payment reference belongs to another user")

    result = await poll_until_settled(
        ref.id,
        gateways(ref.payment_method),
        interval=config.POLL_INTERVAL,
        timeout=config.POLL_TIMEOUT,
    )

    if result.status is PollStatus.TIMEOUT:
        return JSONResponse(
            status_code=202,
            content={
                "status": VerifyOutcome.PENDING.value,
                "reference": ref.id,
                "message": (
                    "We could not confirm your payment yet. If you were charged, "
                    f"contact support with this reference: {ref.id}"
                ),
            },
        )
    if result.status is PollStatus.FAILED:
        raise PaymentFailed(ref.id, result.reason)

    settlement = result.settlement
    content = {
        "status": VerifyOutcome.SETTLED.value,
        "reference": ref.id,
        "alreadySettled": settlement.already_settled,
    }
    if settlement.ticket is not None:
        content["ticket"] = settlement.ticket.to_dict()
    if settlement.vote is not None:
        content["votes"] = settlement.vote.vote_count
    return content
