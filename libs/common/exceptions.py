"""
Exception hierarchy shared by the gateway and its libraries.

Every custom exception raised by ``libs`` and ``apps`` derives from
``TradingPlatformError`` so callers at the HTTP boundary can separate
"expected" domain failures from programming errors.
"""


class TradingPlatformError(Exception):
    """
    Base exception for all platform errors.

    Example:
        >>> try:
        ...     await executor.execute(signal)
        ... except TradingPlatformError as e:
        ...     logger.error(f"Signal rejected: {e}")
    """

    pass


class ConfigurationError(TradingPlatformError):
    """
    Raised when required configuration or secrets are missing.

    Live trading needs venue credentials; paper mode does not. Startup fails
    fast with this error instead of discovering the gap on the first signal.

    Example:
        >>> if not settings.gate_api_key:
        ...     raise ConfigurationError("GATE_API_KEY not configured")
    """

    pass
