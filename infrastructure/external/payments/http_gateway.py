"""
JSON-over-HTTP gateway used for every configured provider (paymob, fawry, paypal).

Endpoints, relative to the provider base_url:
  POST /payments                   submit a charge
  POST /payments/{reference}/capture
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from application.dtos.payments import GatewayCapture, GatewayResult, GatewaySubmission
from core.settings import PaymentSettings, ProviderSettings
from infrastructure.external.payments.base import BasePaymentClient


class HttpPaymentGateway(BasePaymentClient):
    def __init__(
        self,
        provider: str,
        config: ProviderSettings,
        payment_config: PaymentSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            timeouts=payment_config.timeouts.model_dump(),
            retry=payment_config.retry.model_dump(),
            webhook_secret=config.webhook_secret,
            webhook_tolerance=payment_config.webhook.tolerance_seconds,
            transport=transport,
        )
        self.provider = provider
        self._base_url = (config.base_url or "").rstrip("/")
        self._api_key = config.api_key

    def _headers(self, idempotency_key: Optional[str]) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def submit(self, req: GatewaySubmission) -> GatewayResult:
        body: dict[str, Any] = {
            "merchant_reference": req.payment_id,
            "order_reference": req.order_number,
            "amount": str(req.amount),
            "currency": req.currency,
            "method": req.method,
            "fields": req.fields,
        }
        if req.return_url:
            body["return_url"] = req.return_url
        if req.cancel_url:
            body["cancel_url"] = req.cancel_url

        data = await self._request_json(
            "POST",
            f"{self._base_url}/payments",
            json_body=body,
            headers=self._headers(req.idempotency_key),
        )
        result = self._result(data)
        self._log("gateway_submitted", payment_id=req.payment_id, status=result.status, provider_ref=result.provider_ref)
        return result

    async def capture(self, req: GatewayCapture) -> GatewayResult:
        data = await self._request_json(
            "POST",
            f"{self._base_url}/payments/{req.provider_ref}/capture",
            json_body={"amount": str(req.amount), "currency": req.currency},
            headers=self._headers(req.idempotency_key),
        )
        result = self._result(data, fallback_ref=req.provider_ref)
        self._log("gateway_captured", payment_id=req.payment_id, status=result.status, provider_ref=result.provider_ref)
        return result
