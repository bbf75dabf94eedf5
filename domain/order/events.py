"""
Order domain events.

Collected by the domain service and drained by the application layer, which
logs them after the unit of work commits.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class OrderEvent:
    order_number: str
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class OrderCreated(OrderEvent):
    total: str = ""
    item_count: int = 0


@dataclass
class OrderStatusChanged(OrderEvent):
    status_type: str = "order"
    from_status: str = ""
    to_status: str = ""


@dataclass
class OrderCancelled(OrderEvent):
    reason: Optional[str] = None


@dataclass
class OrderDeleted(OrderEvent):
    pass
