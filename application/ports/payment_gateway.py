"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from application.dtos.payments import (
    GatewayCapture,
    GatewayResult,
    GatewaySubmission,
    WebhookEvent,
)


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for external payment processors.

    Implementations should be async and side-effect free beyond IO. Transport
    problems, rejections and malformed responses surface as
    PaymentProcessorError subclasses.
    """

    provider: str

    async def submit(self, req: GatewaySubmission) -> GatewayResult: ...

    async def capture(self, req: GatewayCapture) -> GatewayResult: ...

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> WebhookEvent: ...


class GatewayResolver(Protocol):
    """Returns the gateway for a provider name"""

    def __call__(self, provider: str) -> PaymentGateway: ...
