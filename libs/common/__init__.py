"""Common utilities and exceptions."""

from libs.common.exceptions import ConfigurationError, TradingPlatformError
from libs.common.schemas import TimestampSerializerMixin

__all__ = [
    "TradingPlatformError",
    "ConfigurationError",
    "TimestampSerializerMixin",
]
