"""
Payment domain events.

Dataclass events record payment lifecycle facts; the application layer
drains and logs them after commit. Domain remains free of infrastructure imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class PaymentEvent:
    payment_id: str
    order_number: str
    method: str
    provider_ref: Optional[str] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PaymentInitialized(PaymentEvent):
    amount: str = ""
    fees: str = ""


@dataclass
class PaymentSubmitted(PaymentEvent):
    pass


@dataclass
class PaymentCompleted(PaymentEvent):
    amount: str = ""


@dataclass
class PaymentFailed(PaymentEvent):
    reason: Optional[str] = None


@dataclass
class PaymentRefunded(PaymentEvent):
    amount: str = ""
    actor: str = ""
    full: bool = False


@dataclass
class BankTransferVerified(PaymentEvent):
    verified: bool = False
    actor: str = ""
