import json
from decimal import Decimal

import httpx
import pytest

from application.dtos.payments import GatewayCapture, GatewaySubmission
from core.settings import PaymentSettings, ProviderSettings
from infrastructure.external.payments import build_payment_gateway
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    PaymentMalformedResponseError,
    PaymentProviderError,
    PaymentRecoverableError,
    PaymentSignatureError,
)
from infrastructure.external.payments.http_gateway import HttpPaymentGateway
from infrastructure.external.payments.sandbox import SandboxGateway


def submission(**fields) -> GatewaySubmission:
    return GatewaySubmission(
        payment_id="PAY25030700000001",
        order_number="MD25030712345678",
        amount=Decimal("210.00"),
        currency="EGP",
        method="visa",
        fields=fields,
        idempotency_key="submit:PAY25030700000001",
    )


def http_gateway(handler, provider="paymob") -> HttpPaymentGateway:
    config = PaymentSettings(retry={"max": 2, "base_backoff": 0.0})
    provider_cfg = ProviderSettings(base_url="https://gateway.test/v1/", api_key="sk_test")
    return HttpPaymentGateway(provider, provider_cfg, config, transport=httpx.MockTransport(handler))


class _MapClient(BasePaymentClient):
    provider = "fawry"


def test_provider_status_mapping():
    c = _MapClient()
    assert c._map_status("PAID") == "success"
    assert c._map_status("UNPAID") == "pending"
    assert c._map_status("EXPIRED") == "failure"
    with pytest.raises(PaymentMalformedResponseError):
        c._map_status("SOMETHING_NEW")


@pytest.mark.asyncio
async def test_http_submit_sends_headers_and_maps_result():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "pm_123", "status": "approved"})

    gateway = http_gateway(handler)
    result = await gateway.submit(submission(card_number="4242424242424242"))
    await gateway.aclose()

    assert result.status == "success"
    assert result.provider_ref == "pm_123"
    assert seen["url"] == "https://gateway.test/v1/payments"
    assert seen["headers"]["authorization"] == "Bearer sk_test"
    assert seen["headers"]["idempotency-key"] == "submit:PAY25030700000001"
    assert seen["body"]["amount"] == "210.00"
    assert seen["body"]["merchant_reference"] == "PAY25030700000001"


@pytest.mark.asyncio
async def test_http_capture_uses_reference_path():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/payments/PP-9/capture"
        return httpx.Response(200, json={"status": "COMPLETED"})

    gateway = http_gateway(handler, provider="paypal")
    result = await gateway.capture(GatewayCapture(
        payment_id="PAY1", provider_ref="PP-9", amount=Decimal("10"), currency="USD"
    ))
    assert result.status == "success"
    assert result.provider_ref == "PP-9"


@pytest.mark.asyncio
async def test_http_error_status_is_provider_error():
    gateway = http_gateway(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(PaymentProviderError) as exc_info:
        await gateway.submit(submission())
    assert exc_info.value.provider_code == "502"


@pytest.mark.asyncio
async def test_non_json_response_is_malformed():
    gateway = http_gateway(lambda request: httpx.Response(200, text="<html>ok</html>"))
    with pytest.raises(PaymentMalformedResponseError):
        await gateway.submit(submission())


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_recoverable():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    gateway = http_gateway(handler)
    with pytest.raises(PaymentRecoverableError):
        await gateway.submit(submission())
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_transport_error_then_success():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"id": "pm_1", "status": "pending"})

    result = await http_gateway(handler).submit(submission())
    assert result.status == "pending"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_sandbox_rules():
    sandbox = SandboxGateway("paymob")
    assert (await sandbox.submit(submission(card_number="4242424242424242"))).status == "success"
    assert (await sandbox.submit(submission(card_number="4000000000000002"))).status == "failure"
    assert (await sandbox.submit(submission(phone_number="01000000000"))).status == "failure"
    with pytest.raises(PaymentProviderError):
        await sandbox.submit(submission(card_number="4000000000000119"))

    redirect = submission()
    redirect.return_url = "https://shop.test/payment/success?payment_id=PAY1"
    result = await sandbox.submit(redirect)
    assert result.status == "pending"
    assert result.redirect_url == f"https://shop.test/payment/success?payment_id=PAY1&token={result.provider_ref}"
    assert len(sandbox.submissions) == 5


def test_factory_selects_http_when_base_url_is_set():
    config = PaymentSettings(paymob={"base_url": "https://accept.paymob.test"}, allow_sandbox=True)
    assert isinstance(build_payment_gateway("paymob", config), HttpPaymentGateway)
    assert isinstance(build_payment_gateway("FAWRY", config), SandboxGateway)
    with pytest.raises(ValueError):
        build_payment_gateway("bitpay", config)


def test_unconfigured_provider_is_rejected_unless_sandbox_allowed():
    config = PaymentSettings(paymob={"base_url": "https://accept.paymob.test"})
    assert config.allow_sandbox is False
    assert isinstance(build_payment_gateway("paymob", config), HttpPaymentGateway)
    with pytest.raises(ValueError, match="not configured"):
        build_payment_gateway("fawry", config)
    with pytest.raises(ValueError, match="not configured"):
        build_payment_gateway("sandbox", config)


def test_http_gateway_without_secret_rejects_webhooks():
    gateway = http_gateway(lambda request: httpx.Response(200, json={}))
    body = json.dumps({"id": "evt_1", "reference": "pm_1", "status": "approved"}).encode()
    with pytest.raises(PaymentSignatureError, match="not configured"):
        gateway.parse_webhook({}, body)


def test_sandbox_without_secret_accepts_unsigned_webhooks():
    sandbox = SandboxGateway("paymob")
    body = json.dumps({"id": "evt_1", "reference": "sbx_1", "status": "approved"}).encode()
    event = sandbox.parse_webhook({}, body)
    assert event.provider_ref == "sbx_1"
    assert event.status == "success"
