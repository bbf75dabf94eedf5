"""
Base payment client implementing shared concerns: http, retry, logging,
status mapping and webhook signatures.

Concrete gateways subclass and implement provider-specific calls.
"""
from __future__ import annotations

import hashlib
import hmac
import json
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from application.dtos.payments import GatewayCapture, GatewayResult, GatewaySubmission, WebhookEvent
from core.logging_config import get_logger
from infrastructure.external.payments.exceptions import (
    PaymentMalformedResponseError,
    PaymentProviderError,
    PaymentRecoverableError,
    PaymentSignatureError,
)
from shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL


logger = get_logger(__name__)

SIGNATURE_HEADER = "x-signature"
TIMESTAMP_HEADER = "x-timestamp"


def sign_payload(secret: str, timestamp: str, body: bytes) -> str:
    """HMAC-SHA256 over "<timestamp>.<body>", hex encoded"""
    message = timestamp.encode() + b"." + body
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        webhook_secret: Optional[str] = None,
        webhook_tolerance: int = 300,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        require_signature: bool = True,
    ) -> None:
        self._timeouts_cfg = timeouts or {"connect": 1.0, "read": 3.0, "write": 3.0, "total": 5.0}
        self._retry_cfg = retry or {"max": 2, "base_backoff": 0.2}
        self._webhook_secret = webhook_secret
        self._webhook_tolerance = webhook_tolerance
        self._require_signature = require_signature
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            self._timeouts_cfg["total"],
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeouts, transport=self._transport)
        # Kept open for reuse; aclose() releases it
        yield self._client

    async def aclose(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _retry(self, fn: Callable[[], Any]):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base_backoff"], min=0.1, max=2.0),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                return await fn()

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        json_body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """One HTTP call with retries; every failure becomes a PaymentProcessorError"""

        async def _call() -> httpx.Response:
            async with self.client() as c:
                return await c.request(method, url, json=json_body, headers=headers)

        try:
            response = await self._retry(_call)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            self._log("gateway_transport_failed", url=url, error=str(exc))
            raise PaymentRecoverableError(
                f"{self.provider} is unreachable: {exc.__class__.__name__}", provider=self.provider
            ) from exc

        if response.status_code >= 400:
            self._log("gateway_http_error", url=url, status_code=response.status_code)
            raise PaymentProviderError(
                f"{self.provider} rejected the request ({response.status_code})",
                provider=self.provider,
                provider_code=str(response.status_code),
                details={"body": response.text[:500]},
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise PaymentMalformedResponseError(
                f"{self.provider} returned a non-JSON response", provider=self.provider
            ) from exc
        if not isinstance(data, dict):
            raise PaymentMalformedResponseError(
                f"{self.provider} returned an unexpected payload", provider=self.provider
            )
        return data

    # Helpers
    def _map_status(self, provider_status: Any) -> str:
        """Normalize a provider status to success / pending / failure"""
        mapping = PROVIDER_STATUS_TO_INTERNAL.get(self.provider, {})
        status = mapping.get(str(provider_status))
        if status is None:
            raise PaymentMalformedResponseError(
                f"Unknown {self.provider} status: {provider_status}",
                provider=self.provider,
                details={"status": provider_status},
            )
        return status

    def _verify_signature(self, headers: dict[str, Any], body: bytes) -> None:
        if not self._webhook_secret:
            if self._require_signature:
                raise PaymentSignatureError("Webhook secret is not configured", provider=self.provider)
            return
        lowered = {str(k).lower(): v for k, v in headers.items()}
        signature = lowered.get(SIGNATURE_HEADER)
        timestamp = lowered.get(TIMESTAMP_HEADER)
        if not signature or not timestamp:
            raise PaymentSignatureError("Missing webhook signature headers", provider=self.provider)
        try:
            age = abs(time.time() - int(timestamp))
        except ValueError as exc:
            raise PaymentSignatureError("Invalid webhook timestamp", provider=self.provider) from exc
        if age > self._webhook_tolerance:
            raise PaymentSignatureError("Webhook timestamp outside tolerance", provider=self.provider)
        expected = sign_payload(self._webhook_secret, str(timestamp), body)
        if not hmac.compare_digest(expected, str(signature)):
            raise PaymentSignatureError("Webhook signature mismatch", provider=self.provider)

    def _parse_json_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookEvent:
        """Shared webhook shape: {"id", "type", "reference", "status", "data"}"""
        self._verify_signature(headers, body)
        try:
            payload = json.loads(body or b"{}")
        except ValueError as exc:
            raise PaymentMalformedResponseError("Webhook body is not JSON", provider=self.provider) from exc
        if not isinstance(payload, dict):
            raise PaymentMalformedResponseError("Webhook body must be an object", provider=self.provider)
        event_id = payload.get("id")
        reference = payload.get("reference") or payload.get("provider_ref")
        if not event_id or not reference:
            raise PaymentMalformedResponseError(
                "Webhook is missing id or reference", provider=self.provider
            )
        return WebhookEvent(
            id=str(event_id),
            type=str(payload.get("type") or "payment.updated"),
            provider=self.provider,
            provider_ref=str(reference),
            status=self._map_status(payload.get("status")),
            data=payload.get("data") or {},
            raw_headers=dict(headers),
            raw_body=body,
        )

    def _result(self, data: dict[str, Any], *, fallback_ref: Optional[str] = None) -> GatewayResult:
        return GatewayResult(
            status=self._map_status(data.get("status")),
            provider=self.provider,
            provider_ref=str(data.get("id") or data.get("reference") or fallback_ref or "") or None,
            redirect_url=data.get("redirect_url"),
            message=data.get("message"),
            raw=data,
        )

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )

    async def submit(self, req: GatewaySubmission) -> GatewayResult:
        raise NotImplementedError

    async def capture(self, req: GatewayCapture) -> GatewayResult:
        raise NotImplementedError

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookEvent:
        return self._parse_json_webhook(headers, body)
