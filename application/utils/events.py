"""Application-level helpers for domain events."""
from __future__ import annotations

import re
from dataclasses import asdict
from typing import Any, Iterable


def event_name(event: Any) -> str:
    """PaymentCompleted -> payment_completed"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", type(event).__name__).lower()


def log_domain_events(logger: Any, events: Iterable[Any]) -> None:
    """Emit committed domain events as structured log lines"""
    for event in events:
        payload = asdict(event)
        payload["occurred_at"] = payload["occurred_at"].isoformat()
        logger.info(event_name(event), **payload)
