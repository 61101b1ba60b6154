"""Shared Pydantic schema utilities."""

from datetime import datetime

from pydantic import field_serializer


class TimestampSerializerMixin:
    """
    Serialize a ``timestamp`` field as ISO 8601 with a ``Z`` suffix.

    Usage:
        class HealthResponse(TimestampSerializerMixin, BaseModel):
            timestamp: datetime

    Output is ``"2025-03-02T08:15:00Z"`` rather than ``"...+00:00"``.

    Note: Mixin must be listed BEFORE BaseModel in inheritance order.
    """

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat().replace("+00:00", "Z")
