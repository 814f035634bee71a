import json
import time

import httpx
import pytest

from spotix import config
from spotix.domain import PaymentMethod, VerifyOutcome
from spotix.errors import GatewayError, GatewayTimeout, UnsupportedPaymentMethod
from spotix.gateways import (
    InternalGateway,
    MonnifyGateway,
    PaymentGateway,
    PaystackGateway,
    get_gateway,
    interpret,
)


@pytest.mark.parametrize(
    "payload, outcome",
    [
        ({"status": True, "data": {"status": "success", "amount": 215000}}, VerifyOutcome.SETTLED),
        ({"status": "success"}, VerifyOutcome.SETTLED),
        ({"data": {"status": "success"}}, VerifyOutcome.SETTLED),
        ({"success": True}, VerifyOutcome.SETTLED),
        ({"status": "SUCCESS"}, VerifyOutcome.SETTLED),
        ({"requestSuccessful": True, "responseBody": {"paymentStatus": "PAID"}}, VerifyOutcome.SETTLED),
        ({"status": True, "data": {"status": "failed"}}, VerifyOutcome.FAILED),
        ({"status": True, "data": {"status": "reversed"}}, VerifyOutcome.FAILED),
        ({"responseBody": {"paymentStatus": "EXPIRED"}}, VerifyOutcome.FAILED),
        ({"status": True, "data": {"status": "abandoned"}}, VerifyOutcome.PENDING),
        ({"status": True, "data": {"status": "ongoing"}}, VerifyOutcome.PENDING),
        ({"responseBody": {"paymentStatus": "PENDING"}}, VerifyOutcome.PENDING),
        ({}, VerifyOutcome.PENDING),
    ],
)
def test_interpret_normalises_provider_shapes(payload, outcome):
    assert interpret(payload) is outcome


def paystack(handler) -> PaystackGateway:
    return PaystackGateway(
        secret_key="sk_test_unit",
        base_url="https://paystack.test",
        transport=httpx.MockTransport(handler),
    )


class TestPaystackVerify:
    async def test_success_reports_paid_amount(self):
        def handler(request):
            assert request.url.path == "/transaction/verify/SPTX-REF-1"
            assert request.headers["Authorization"] == "Bearer sk_test_unit"
            return httpx.Response(200, json={"status": True, "data": {"status": "success", "amount": 215000}})

        result = await paystack(handler).verify("SPTX-REF-1")

        assert result.outcome is VerifyOutcome.SETTLED
        assert result.amount_minor_units == 215000

    async def test_timeout_is_pending_not_failed(self):
        def handler(request):
            raise httpx.ReadTimeout("gateway slow", request=request)

        result = await paystack(handler).verify("SPTX-REF-1")

        assert result.outcome is VerifyOutcome.PENDING
        assert result.reason == "timeout"
        assert result.status_code == 408

    async def test_network_error_is_pending(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        result = await paystack(handler).verify("SPTX-REF-1")

        assert result.outcome is VerifyOutcome.PENDING
        assert result.reason == "network_error"

    async def test_provider_error_surfaces_message(self):
        def handler(request):
            return httpx.Response(400, json={"status": False, "message": "Transaction reference not found"})

        result = await paystack(handler).verify("SPTX-REF-1")

        assert result.outcome is VerifyOutcome.PENDING
        assert result.reason == "Transaction reference not found"
        assert result.status_code == 400

    async def test_failed_charge_carries_gateway_response(self):
        def handler(request):
            return httpx.Response(
                200, json={"status": True, "data": {"status": "failed", "gateway_response": "Declined"}}
            )

        result = await paystack(handler).verify("SPTX-REF-1")

        assert result.outcome is VerifyOutcome.FAILED
        assert result.reason == "Declined"


class TestPaystackInitialize:
    async def test_returns_checkout_url(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["amount"] == 215000
            assert body["reference"] == "SPTX-REF-1"
            return httpx.Response(200, json={
                "status": True,
                "data": {"authorization_url": "https://checkout.paystack.com/abc", "reference": "SPTX-REF-1"},
            })

        result = await paystack(handler).initialize(215000, "ada@example.com", reference="SPTX-REF-1")

        assert result.status is True
        assert result.redirect_url == "https://checkout.paystack.com/abc"
        assert result.provider_reference == "SPTX-REF-1"

    async def test_timeout_raises_gateway_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(GatewayTimeout) as exc:
            await paystack(handler).initialize(215000, "ada@example.com")
        assert exc.value.status_code == 408

    async def test_provider_rejection_raises_gateway_error(self):
        def handler(request):
            return httpx.Response(401, json={"status": False, "message": "Invalid key"})

        with pytest.raises(GatewayError) as exc:
            await paystack(handler).initialize(215000, "ada@example.com")
        assert exc.value.message == "Invalid key"
        assert exc.value.status_code == 401


def test_missing_paystack_secret_fails_at_construction(monkeypatch):
    monkeypatch.setattr(config, "PAYSTACK_SECRET_KEY", None)
    with pytest.raises(RuntimeError):
        PaystackGateway()


def test_cold_start_window_uses_longer_timeout():
    gateway = paystack(lambda request: httpx.Response(200))
    assert gateway.timeout() == config.COLD_START_TIMEOUT

    gateway._started = time.monotonic() - config.COLD_START_WINDOW - 1
    assert gateway.timeout() == config.REQUEST_TIMEOUT


async def test_monnify_verify_logs_in_and_converts_naira():
    def handler(request):
        if request.url.path == "/api/v1/auth/login":
            assert request.headers["Authorization"].startswith("Basic ")
            return httpx.Response(200, json={"requestSuccessful": True, "responseBody": {"accessToken": "tok"}})
        assert request.url.path == "/api/v2/merchant/transactions/query"
        assert request.url.params["paymentReference"] == "SPTX-REF-9"
        assert request.headers["Authorization"] == "Bearer tok"
        return httpx.Response(200, json={
            "requestSuccessful": True,
            "responseBody": {"paymentStatus": "PAID", "amountPaid": "2150.00"},
        })

    gateway = MonnifyGateway(
        api_key="MK_TEST",
        secret_key="secret",
        contract_code="123",
        base_url="https://monnify.test",
        transport=httpx.MockTransport(handler),
    )
    result = await gateway.verify("SPTX-REF-9")

    assert result.outcome is VerifyOutcome.SETTLED
    assert result.amount_minor_units == 215000


async def test_monnify_login_failure_is_pending():
    def handler(request):
        return httpx.Response(401, json={"requestSuccessful": False, "responseMessage": "Bad credentials"})

    gateway = MonnifyGateway(
        api_key="MK_TEST",
        secret_key="secret",
        base_url="https://monnify.test",
        transport=httpx.MockTransport(handler),
    )
    result = await gateway.verify("SPTX-REF-9")

    assert result.outcome is VerifyOutcome.PENDING
    assert result.reason == "Bad credentials"


async def test_internal_rails_always_settle():
    result = await InternalGateway(PaymentMethod.WALLET).verify("anything")
    assert result.outcome is VerifyOutcome.SETTLED


@pytest.mark.parametrize("method", ["agent", "bitcoin"])
def test_offline_methods_have_no_gateway(method):
    with pytest.raises(UnsupportedPaymentMethod):
        get_gateway(method)


def test_base_adapter_cannot_be_instantiated():
    with pytest.raises(TypeError):
        PaymentGateway()
