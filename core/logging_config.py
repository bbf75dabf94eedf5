"""
Structlog configuration for the order and payment engine
"""
import json
import logging
from typing import Any, List

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings


# Never written to logs in clear; card numbers keep their last four digits
SENSITIVE_KEYS = frozenset({"card_number", "cvv", "expiry_date", "api_key", "webhook_secret", "authorization"})


def _mask(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key == "card_number":
        digits = "".join(ch for ch in str(value) if ch.isdigit())
        return f"****{digits[-4:]}" if len(digits) >= 4 else "****"
    return "***"


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: _mask(k, v) if str(k).lower() in SENSITIVE_KEYS else _redact(v)
            for k, v in value.items()
        }
    return value


def redact_payment_data(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking card and credential fields, nested dicts included"""
    return _redact(event_dict)


def get_renderer() -> Any:
    """Console in DEBUG, JSON otherwise.
    structlog passes default/sort_keys to the serializer, so accept them.
    """
    if settings.DEBUG:
        return ConsoleRenderer(colors=True)

    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)
    return JSONRenderer(serializer=_dumps)


def configure_logging() -> None:
    """Configure structlog and route stdlib logging through the same chain."""
    timestamper = TimeStamper(fmt="iso")

    # Shared by ProcessorFormatter and structlog.configure
    shared_pre_chain: List[Any] = [
        merge_contextvars,
        redact_payment_data,
        add_log_level,
        timestamper,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_pre_chain,
            ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stdlib records (uvicorn, sqlalchemy) go through the same renderer
    renderer = get_renderer()
    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[
            ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


configure_logging()
