from fastapi import APIRouter, Depends

from spotix.auth import get_current_user_id
from spotix.discounts import validate_discount
from spotix.schemas import ValidateDiscount

router = APIRouter(prefix="/discount")


@router.post("/validate")
async def validate(body: ValidateDiscount, user_id: str = Depends(get_current_user_id)):
    quote = await validate_discount(body.discount_code, body.event_id, price=body.ticket_price)
    return {
        "valid": True,
        "code": quote.code,
        "discountType": quote.discount_type.value,
        "discountValue": quote.discount_value,
        "discountAmount": quote.discount_amount,
        "finalPrice": quote.final_price,
    }
