"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings; variables carry the PAYMENT_ prefix,
e.g. PAYMENT_TIMEOUTS__READ=5 or PAYMENT_PAYMOB__BASE_URL=https://...
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 3.0
    write: float = 3.0
    total: float = 5.0


class PaymentRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class WebhookSettings(BaseModel):
    tolerance_seconds: int = 300
    ip_allowlist: list[str] | None = None  # Optional IPs/CIDRs allowed to post webhooks


class ProviderSettings(BaseModel):
    """Generic HTTP gateway endpoint; no base_url means the in-process sandbox is used"""
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    webhook_secret: Optional[str] = None


class BankAccountSettings(BaseModel):
    bank_name: str = "National Bank of Egypt"
    account_name: str = "Maison Darin"
    account_number: str = "0000000000"
    iban: Optional[str] = None
    swift: Optional[str] = None


class PaymentSettings(BaseSettings):
    default_currency: str = "EGP"
    payment_id_prefix: str = "PAY"
    payment_id_random_digits: int = 8
    default_timeout_minutes: int = 30
    frontend_url: str = "http://localhost:3000"
    # Providers without a base_url use the in-process sandbox; off unless explicitly enabled
    allow_sandbox: bool = False

    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    paymob: ProviderSettings = Field(default_factory=ProviderSettings)
    fawry: ProviderSettings = Field(default_factory=ProviderSettings)
    paypal: ProviderSettings = Field(default_factory=ProviderSettings)
    sandbox: ProviderSettings = Field(default_factory=ProviderSettings)

    bank_account: BankAccountSettings = Field(default_factory=BankAccountSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
        env_prefix="PAYMENT_",
    )

    def provider(self, name: str) -> ProviderSettings:
        value = getattr(self, name.lower(), None)
        if isinstance(value, ProviderSettings):
            return value
        return ProviderSettings()


payment_settings = PaymentSettings()
