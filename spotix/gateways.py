"""
Payment gateway adapters.

Each provider answers "is this charge paid?" in its own shape. The adapters
only initiate and verify charges; they never write to the database.
"""

import base64
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx

from spotix import config
from spotix.domain import InitializeResult, PaymentMethod, VerifyOutcome, VerifyResult
from spotix.errors import GatewayError, GatewayTimeout, UnsupportedPaymentMethod
from spotix.utils import to_minor_units

logger = logging.getLogger(__name__)

Payload = dict[str, Any]


def _data(payload: Payload) -> Payload:
    data = payload.get("data")
    return data if isinstance(data, dict) else {}


def _monnify_body(payload: Payload) -> Payload:
    body = payload.get("responseBody")
    return body if isinstance(body, dict) else {}


def _json(response: httpx.Response) -> Payload:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


# ============================================================
#            RESPONSE SHAPE NORMALISATION TABLE
# ============================================================
# Evaluated in order, first match wins, no match means pending.
# New provider quirks go here rather than into more branching.
VERIFY_RULES: list[tuple[Callable[[Payload], bool], VerifyOutcome]] = [
    (lambda p: p.get("status") is True and _data(p).get("status") == "success", VerifyOutcome.SETTLED),
    (lambda p: p.get("status") == "success", VerifyOutcome.SETTLED),
    (lambda p: _data(p).get("status") == "success", VerifyOutcome.SETTLED),
    (lambda p: p.get("success") is True, VerifyOutcome.SETTLED),
    (lambda p: _monnify_body(p).get("paymentStatus") == "PAID", VerifyOutcome.SETTLED),
    (lambda p: p.get("status") == "SUCCESS", VerifyOutcome.SETTLED),
    (lambda p: _data(p).get("status") in ("failed", "reversed"), VerifyOutcome.FAILED),
    (
        lambda p: _monnify_body(p).get("paymentStatus") in ("FAILED", "EXPIRED", "CANCELLED", "REVERSED"),
        VerifyOutcome.FAILED,
    ),
]


def interpret(payload: Payload) -> VerifyOutcome:
    for predicate, outcome in VERIFY_RULES:
        if predicate(payload):
            return outcome
    return VerifyOutcome.PENDING


def _paid_amount(payload: Payload) -> int | None:
    # Paystack reports kobo, Monnify reports naira
    if isinstance(_data(payload).get("amount"), (int, float)):
        return int(_data(payload)["amount"])
    amount_paid = _monnify_body(payload).get("amountPaid")
    if isinstance(amount_paid, (int, float, str)) and amount_paid != "":
        return to_minor_units(amount_paid)
    return None


class PaymentGateway(ABC):
    """
    Base adapter: shared timeout handling and verify normalisation.

    HTTP adapters implement fetch_verification() and inherit verify(); rails
    with nothing external to ask override verify() instead.
    """

    method: PaymentMethod

    def __init__(self, base_url: str = "", transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._started = time.monotonic()

    def timeout(self) -> float:
        """Longer timeout while the process may still be cold."""
        if time.monotonic() - self._started < config.COLD_START_WINDOW:
            return config.COLD_START_TIMEOUT
        return config.REQUEST_TIMEOUT

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout(),
            transport=self._transport,
        )

    @abstractmethod
    async def initialize(
        self,
        amount_minor_units: int,
        email: str,
        callback_url: str | None = None,
        metadata: Payload | None = None,
        reference: str | None = None,
    ) -> InitializeResult:
        ...

    async def fetch_verification(self, reference: str) -> httpx.Response:
        raise NotImplementedError(f"{type(self).__name__} does not fetch verifications")

    async def verify(self, reference: str) -> VerifyResult:
        try:
            response = await self.fetch_verification(reference)
        except httpx.TimeoutException:
            logger.warning("Verify timeout for %s on %s", reference, self.method.value)
            return VerifyResult(VerifyOutcome.PENDING, reason="timeout", status_code=408)
        except httpx.TransportError as exc:
            logger.warning("Verify transport error for %s: %s", reference, exc)
            return VerifyResult(VerifyOutcome.PENDING, reason="network_error", status_code=503)
        except GatewayError as exc:
            return VerifyResult(VerifyOutcome.PENDING, reason=exc.message, status_code=exc.status_code)

        payload = _json(response)
        outcome = interpret(payload)
        reason = ""
        if response.status_code != 200 and outcome is not VerifyOutcome.FAILED:
            reason = payload.get("message") or f"provider returned {response.status_code}"
            outcome = VerifyOutcome.PENDING
        elif outcome is VerifyOutcome.FAILED:
            reason = _data(payload).get("gateway_response") or payload.get("message") or "charge failed"

        return VerifyResult(
            outcome,
            reason=reason,
            amount_minor_units=_paid_amount(payload),
            payload=payload,
            status_code=response.status_code,
        )


# ============================================================
#                         PAYSTACK
# ============================================================
class PaystackGateway(PaymentGateway):
    method = PaymentMethod.PAYSTACK

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        secret_key = secret_key or config.PAYSTACK_SECRET_KEY
        if not secret_key:
            raise RuntimeError("PAYSTACK_SECRET_KEY environment variable is required")
        super().__init__(base_url or config.PAYSTACK_BASE_URL, transport)
        self.headers = {
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
            "User-Agent": "Spotix-Payment-Service/1.0",
        }

    async def initialize(self, amount_minor_units, email, callback_url=None, metadata=None, reference=None):
        payload: Payload = {
            "email": email,
            "amount": amount_minor_units,  # Paystack uses kobo
            "callback_url": callback_url or f"{config.APP_URL}/paystack-success",
        }
        if reference:
            payload["reference"] = reference
        if metadata:
            payload["metadata"] = metadata

        try:
            async with self._client() as client:
                res = await client.post("/transaction/initialize", json=payload, headers=self.headers)
        except httpx.TimeoutException as exc:
            raise GatewayTimeout() from exc
        except httpx.TransportError as exc:
            logger.error("Paystack initialize transport error: %s", exc)
            raise GatewayError("Failed to initialize payment") from exc

        data = _json(res)
        if res.status_code != 200 or not data.get("status"):
            logger.error("Paystack API error: %s", data)
            raise GatewayError(
                data.get("message") or "Failed to initialize payment",
                status_code=res.status_code if res.status_code >= 400 else 502,
            )

        return InitializeResult(
            status=True,
            provider_reference=_data(data).get("reference", reference or ""),
            redirect_url=_data(data).get("authorization_url"),
            payload=data,
        )

    async def fetch_verification(self, reference):
        async with self._client() as client:
            return await client.get(f"/transaction/verify/{reference}", headers=self.headers)


# ============================================================
#                          MONNIFY
# ============================================================
class MonnifyGateway(PaymentGateway):
    method = PaymentMethod.MONNIFY

    def __init__(
        self,
        api_key: str | None = None,
        secret_key: str | None = None,
        contract_code: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or config.MONNIFY_API_KEY
        self.secret_key = secret_key or config.MONNIFY_SECRET_KEY
        self.contract_code = contract_code or config.MONNIFY_CONTRACT_CODE
        if not (self.api_key and self.secret_key):
            raise RuntimeError("MONNIFY_API_KEY and MONNIFY_SECRET_KEY are required")
        super().__init__(base_url or config.MONNIFY_BASE_URL, transport)

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        basic = base64.b64encode(f"{self.api_key}:{self.secret_key}".encode()).decode()
        res = await client.post("/api/v1/auth/login", headers={"Authorization": f"Basic {basic}"})
        data = _json(res)
        token = _monnify_body(data).get("accessToken")
        if res.status_code != 200 or not token:
            raise GatewayError(data.get("responseMessage") or "Monnify authentication failed")
        return token

    async def initialize(self, amount_minor_units, email, callback_url=None, metadata=None, reference=None):
        payload: Payload = {
            "amount": amount_minor_units / 100,  # Monnify uses naira
            "customerEmail": email,
            "paymentReference": reference,
            "paymentDescription": "Spotix payment",
            "currencyCode": "NGN",
            "contractCode": self.contract_code,
            "redirectUrl": callback_url or f"{config.APP_URL}/monnify-success",
            "metaData": metadata or {},
        }
        try:
            async with self._client() as client:
                token = await self._access_token(client)
                res = await client.post(
                    "/api/v1/merchant/transactions/init-transaction",
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.TimeoutException as exc:
            raise GatewayTimeout() from exc
        except httpx.TransportError as exc:
            logger.error("Monnify initialize transport error: %s", exc)
            raise GatewayError("Failed to initialize payment") from exc

        data = _json(res)
        if res.status_code != 200 or not data.get("requestSuccessful"):
            logger.error("Monnify API error: %s", data)
            raise GatewayError(data.get("responseMessage") or "Failed to initialize payment")

        body = _monnify_body(data)
        return InitializeResult(
            status=True,
            provider_reference=body.get("paymentReference", reference or ""),
            redirect_url=body.get("checkoutUrl"),
            payload=data,
        )

    async def fetch_verification(self, reference):
        async with self._client() as client:
            token = await self._access_token(client)
            return await client.get(
                "/api/v2/merchant/transactions/query",
                params={"paymentReference": reference},
                headers={"Authorization": f"Bearer {token}"},
            )


# ============================================================
#                  INTERNAL (WALLET / FREE)
# ============================================================
class InternalGateway(PaymentGateway):
    """Wallet and free rails: nothing external to confirm."""

    def __init__(self, method: PaymentMethod):
        super().__init__()
        self.method = method

    async def initialize(self, amount_minor_units, email, callback_url=None, metadata=None, reference=None):
        return InitializeResult(
            status=True,
            provider_reference=reference or "",
            redirect_url=None,
            payload={"status": True, "data": {"reference": reference}},
        )

    async def verify(self, reference):
        return VerifyResult(VerifyOutcome.SETTLED, payload={"status": "success"})


_gateways: dict[PaymentMethod, PaymentGateway] = {}


def get_gateway(method: PaymentMethod | str) -> PaymentGateway:
    """Adapter for a payment method, created on first use."""
    method = PaymentMethod(method)
    if method not in _gateways:
        if method is PaymentMethod.PAYSTACK:
            _gateways[method] = PaystackGateway()
        elif method is PaymentMethod.MONNIFY:
            _gateways[method] = MonnifyGateway()
        elif method in (PaymentMethod.WALLET, PaymentMethod.FREE):
            _gateways[method] = InternalGateway(method)
        else:
            raise UnsupportedPaymentMethod(method.value)
    return _gateways[method]


def gateway_registry() -> Callable[[PaymentMethod | str], PaymentGateway]:
    """FastAPI dependency so routes can be given fake gateways."""
    return get_gateway
