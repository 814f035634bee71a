import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from spotix import config
from spotix.auth import get_optional_user_id
from spotix.errors import Forbidden, PaymentFailed
from spotix.gateways import gateway_registry
from spotix.polling import PollStatus, poll_until_settled
from spotix.references import create_vote_reference, get_reference, reference_to_dict
from spotix.schemas import CreateVoteReference

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vote")


@router.post("/reference")
async def vote_reference(body: CreateVoteReference, user_id: Optional[str] = Depends(get_optional_user_id)):
    ref = await create_vote_reference(
        user_id,
        body.poll_id,
        body.contestant_id,
        body.vote_count,
        payment_method=body.payment_method,
        guest_name=body.guest_name,
        guest_email=body.guest_email,
    )
    return reference_to_dict(ref)


@router.post("/confirm")
async def confirm_vote(
    reference: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    gateways=Depends(gateway_registry),
):
    ref = await get_reference(reference)
    if ref.payer_id is not None and ref.payer_id != user_id:
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
                "status": "pending",
                "reference": ref.id,
                "message": f"Vote payment not confirmed yet. Contact support with reference {ref.id}",
            },
        )
    if result.status is PollStatus.FAILED:
        raise PaymentFailed(ref.id, result.reason)

    vote = result.settlement.vote
    return {
        "status": "settled",
        "reference": ref.id,
        "alreadySettled": result.settlement.already_settled,
        "votes": vote.vote_count if vote else 0,
    }
