import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from spotix import config
from spotix.domain import PaymentMethod
from spotix.errors import ReferenceNotFound
from spotix.references import has_ticket_metadata, record_reference_from_metadata
from spotix.settlement import settle_with_retry
from spotix.utils import to_minor_units

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook")

Payload = dict[str, Any]


def _section(payload: Payload, key: str) -> Payload:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _naira_to_kobo(value: Any) -> int | None:
    if isinstance(value, (int, float, str)) and value != "":
        return to_minor_units(value)
    return None


@dataclass(frozen=True)
class WebhookProvider:
    """How one provider signs, names and shapes its charge notifications."""

    name: str
    method: PaymentMethod
    signature_header: str
    secret: Callable[[], str]
    is_charge_success: Callable[[Payload], bool]
    event_name: Callable[[Payload], str]
    reference: Callable[[Payload], str | None]
    amount: Callable[[Payload], int | None]
    metadata: Callable[[Payload], Payload | None]


PAYSTACK = WebhookProvider(
    name="paystack",
    method=PaymentMethod.PAYSTACK,
    signature_header="x-paystack-signature",
    secret=lambda: config.PAYSTACK_WEBHOOK_SECRET,
    is_charge_success=lambda p: p.get("event") == "charge.success",
    event_name=lambda p: str(p.get("event")),
    reference=lambda p: _section(p, "data").get("reference"),
    # Paystack amounts are already kobo
    amount=lambda p: _section(p, "data").get("amount"),
    metadata=lambda p: _section(_section(p, "data"), "metadata"),
)

MONNIFY = WebhookProvider(
    name="monnify",
    method=PaymentMethod.MONNIFY,
    signature_header="monnify-signature",
    secret=lambda: config.MONNIFY_SECRET_KEY,
    is_charge_success=lambda p: p.get("eventType") == "SUCCESSFUL_TRANSACTION",
    event_name=lambda p: str(p.get("eventType")),
    reference=lambda p: _section(p, "eventData").get("paymentReference"),
    amount=lambda p: _naira_to_kobo(_section(p, "eventData").get("amountPaid")),
    metadata=lambda p: _section(_section(p, "eventData"), "metaData"),
)


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    if not (secret and signature):
        return False

    computed = hmac.new(
        secret.encode(),
        payload,
        hashlib.sha512
    ).hexdigest()
    return hmac.compare_digest(computed, signature)


async def handle_webhook(provider: WebhookProvider, request: Request):
    raw_body = await request.body()
    signature = request.headers.get(provider.signature_header, "")

    if not verify_signature(raw_body, signature, provider.secret()):
        logger.warning("Rejected %s webhook with invalid signature", provider.name)
        return JSONResponse(status_code=401, content={"error": "Invalid signature"})

    try:
        payload = json.loads(raw_body)
    except ValueError:
        logger.warning("Unparseable %s webhook body", provider.name)
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    if not provider.is_charge_success(payload):
        logger.info("Unhandled %s event: %s", provider.name, provider.event_name(payload))
        return {"status": "success"}

    reference = provider.reference(payload)
    if not reference:
        logger.warning("%s charge event without a reference", provider.name)
        return {"status": "success"}

    try:
        paid_amount = provider.amount(payload)
        try:
            result = await settle_with_retry(reference, paid_amount=paid_amount, rail=provider.method)
        except ReferenceNotFound:
            metadata = provider.metadata(payload)
            if not has_ticket_metadata(metadata):
                logger.warning("Unknown reference %s from %s with no ticket metadata", reference, provider.name)
                return {"status": "success"}
            await record_reference_from_metadata(reference, metadata, paid_amount or 0, provider.method)
            result = await settle_with_retry(reference, paid_amount=paid_amount, rail=provider.method)
    except Exception:
        logger.error("Failed to process %s webhook for %s", provider.name, reference, exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to process webhook"})

    logger.info(
        "%s webhook settled %s (already settled: %s)",
        provider.name, reference, result.already_settled,
    )
    return {"status": "success"}


@router.post("")
async def paystack_webhook(request: Request):
    return await handle_webhook(PAYSTACK, request)


@router.post("/monnify")
async def monnify_webhook(request: Request):
    return await handle_webhook(MONNIFY, request)
