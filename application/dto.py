"""
Data transfer objects shared by the order and payment boundaries
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, Field, PlainSerializer, model_serializer

from core.config import settings
from shared.codes import BusinessCode


def _utc_z(value: datetime) -> str:
    ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# Amounts leave the API as two-decimal strings, never floats
Money = Annotated[Decimal, PlainSerializer(lambda v: f"{v:.2f}", return_type=str, when_used="json")]


class DTOBase(BaseModel):
    """Timestamps in every DTO serialize as UTC with a Z suffix"""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        return self._convert(handler(self))

    @classmethod
    def _convert(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return _utc_z(value)
        if isinstance(value, (list, tuple)):
            return type(value)(cls._convert(v) for v in value)
        if isinstance(value, dict):
            return {k: cls._convert(v) for k, v in value.items()}
        return value


class PaginationParams(DTOBase):
    """Order and payment listings are paged newest first"""
    page: int = Field(1, ge=1, description="Page number, starting at 1")
    size: int = Field(
        default=settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Page size",
    )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.size

    @property
    def limit(self) -> int:
        return self.size


class MessageDTO(DTOBase):
    message: str
    code: int = BusinessCode.SUCCESS
