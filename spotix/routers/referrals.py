from fastapi import APIRouter, Depends

from spotix.auth import get_current_user_id
from spotix.referral import create_referral_code, credit_referral, withdraw_referral
from spotix.schemas import CreditReferral

router = APIRouter(prefix="/referral")


@router.post("/code")
async def referral_code(user_id: str = Depends(get_current_user_id)):
    code = await create_referral_code(user_id)
    return {"success": True, "referralCode": code}


@router.post("/credit")
async def referral_credit(body: CreditReferral, user_id: str = Depends(get_current_user_id)):
    credited = await credit_referral(body.referral_code, user_id)
    return {"success": credited}


@router.post("/withdraw")
async def referral_withdraw(user_id: str = Depends(get_current_user_id)):
    amount = await withdraw_referral(user_id)
    return {"success": True, "amount": amount}
