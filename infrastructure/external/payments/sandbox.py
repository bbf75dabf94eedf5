"""
In-process gateway for development and tests.

Behaviour is driven by the submitted fields:
- card numbers ending in 0002 are declined
- wallet phone numbers ending in 0000 are declined
- submissions with a return_url answer pending with an approval link
- card numbers ending in 0119 raise a processor error
"""
from __future__ import annotations

import uuid
from typing import Optional

from application.dtos.payments import GatewayCapture, GatewayResult, GatewaySubmission
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import PaymentProviderError

DECLINED_CARD_SUFFIX = "0002"
DECLINED_PHONE_SUFFIX = "0000"
ERROR_CARD_SUFFIX = "0119"


class SandboxGateway(BasePaymentClient):
    def __init__(self, provider: str = "sandbox", *, webhook_secret: Optional[str] = None) -> None:
        # Unsigned webhooks are accepted only when no secret is configured
        super().__init__(webhook_secret=webhook_secret, require_signature=False)
        self.provider = provider
        self.submissions: list[GatewaySubmission] = []
        self.captures: list[GatewayCapture] = []

    @staticmethod
    def _reference() -> str:
        return f"sbx_{uuid.uuid4().hex[:20]}"

    def _decide(self, req: GatewaySubmission) -> str:
        card = str(req.fields.get("card_number") or "")
        phone = str(req.fields.get("phone_number") or "")
        if card.endswith(ERROR_CARD_SUFFIX):
            raise PaymentProviderError("Processor unavailable", provider=self.provider, provider_code="sandbox_error")
        if card.endswith(DECLINED_CARD_SUFFIX) or phone.endswith(DECLINED_PHONE_SUFFIX):
            return "failure"
        if req.return_url:
            return "pending"
        return "success"

    async def submit(self, req: GatewaySubmission) -> GatewayResult:
        self.submissions.append(req)
        status = self._decide(req)
        reference = self._reference()
        redirect_url = None
        if status == "pending" and req.return_url:
            sep = "&" if "?" in req.return_url else "?"
            redirect_url = f"{req.return_url}{sep}token={reference}"
        self._log("sandbox_submitted", payment_id=req.payment_id, status=status, provider_ref=reference)
        return GatewayResult(
            status=status,
            provider=self.provider,
            provider_ref=reference,
            redirect_url=redirect_url,
            message="Declined by issuer" if status == "failure" else None,
        )

    async def capture(self, req: GatewayCapture) -> GatewayResult:
        self.captures.append(req)
        self._log("sandbox_captured", payment_id=req.payment_id, provider_ref=req.provider_ref)
        return GatewayResult(status="success", provider=self.provider, provider_ref=req.provider_ref)
