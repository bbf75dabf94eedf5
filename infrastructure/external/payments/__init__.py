"""
Factory for payment gateway clients.

A provider with a base_url talks HTTP. Without one it falls back to the
in-process sandbox, but only when PAYMENT_ALLOW_SANDBOX is set; otherwise
the provider counts as unconfigured.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from core.settings import PaymentSettings, payment_settings

logger = get_logger(__name__)

KNOWN_PROVIDERS = frozenset({"paymob", "fawry", "paypal", "sandbox"})

_gateways: dict[str, PaymentGateway] = {}


def build_payment_gateway(name: str, config: Optional[PaymentSettings] = None) -> PaymentGateway:
    config = config or payment_settings
    name = name.lower()
    if name not in KNOWN_PROVIDERS:
        raise ValueError(f"Unsupported payment provider: {name}")
    provider_cfg = config.provider(name)
    if provider_cfg.base_url:
        from .http_gateway import HttpPaymentGateway
        return HttpPaymentGateway(name, provider_cfg, config)

    if not config.allow_sandbox:
        raise ValueError(f"Payment provider is not configured: {name}")

    from .sandbox import SandboxGateway
    logger.warning("payment_gateway_sandbox_fallback", provider=name)
    return SandboxGateway(name, webhook_secret=provider_cfg.webhook_secret)


def get_payment_gateway(provider: str) -> PaymentGateway:
    """Cached per provider so HTTP connections are reused"""
    name = provider.lower()
    gateway = _gateways.get(name)
    if gateway is None:
        gateway = build_payment_gateway(name)
        _gateways[name] = gateway
    return gateway


async def close_payment_gateways() -> None:
    for gateway in list(_gateways.values()):
        aclose = getattr(gateway, "aclose", None)
        if aclose is not None:
            await aclose()
    _gateways.clear()
