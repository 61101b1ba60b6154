"""
Configuration for Signal Gateway.

All settings are read from environment variables (case-insensitive) or a
``.env`` file through Pydantic Settings.

Example:
    >>> from apps.signal_gateway.config import Settings
    >>> settings = Settings()
    >>> settings.port
    8010
    >>> settings.default_position_mode
    <PositionMode.DUAL: 'dual'>
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.common.exceptions import ConfigurationError
from libs.exchange.client import DEFAULT_BASE_URL
from libs.exchange.models import PositionMode
from libs.exchange.parsing import parse_position_mode

# Source addresses TradingView sends webhook alerts from.
TRADINGVIEW_WEBHOOK_IPS = (
    "52.89.214.238",
    "34.212.75.30",
    "54.218.53.128",
    "52.32.178.7",
)

_POSITION_MODES = {"dual", "dual_long_short", "dual_long", "dual_short", "single"}


class Settings(BaseSettings):
    """
    Signal gateway configuration settings.

    Example:
        # Live trading
        export GATE_API_KEY=...
        export GATE_API_SECRET=...
        export POSITION_MODE=dual_long_short
        export WEBHOOK_SECRET=change-me

        # Paper trading, no credentials needed
        export TEST_MODE=true
    """

    # ========================================================================
    # Service Configuration
    # ========================================================================

    service_name: str = "signal-gateway"
    host: str = "0.0.0.0"
    port: int = 8010
    log_level: str = "INFO"
    environment: str = "dev"

    test_mode: bool = False
    """
    Route orders to the in-memory paper venue instead of Gate.io.

    Notes:
        - No credentials required
        - Balance and leverage come from paper_balance_available / paper_leverage
    """

    # ========================================================================
    # Venue Configuration
    # ========================================================================

    gate_api_key: str | None = None
    gate_api_secret: str | None = None
    gate_base_url: str = DEFAULT_BASE_URL
    futures_settle: str = "usdt"

    position_mode: str = "dual_long_short"
    """
    Position mode assumed when a position payload does not report one.

    Accepted: dual_long_short, dual, dual_long, dual_short (all dual), single.
    """

    default_leverage: Decimal = Field(default=Decimal("1"), gt=0)
    """Leverage used when neither the signal nor the venue reports one."""

    http_timeout_seconds: float = Field(default=10.0, gt=0)
    execution_timeout_seconds: float = Field(default=30.0, ge=0)
    """Per-execution limit, measured from acquiring the instrument slot. 0 disables."""

    # ========================================================================
    # Webhook Authentication
    # ========================================================================

    webhook_secret: str | None = None
    """Shared secret expected in the payload ``secret`` field. Unset disables the check."""

    enable_ip_whitelist: bool = False
    allowed_ips: str = ",".join(TRADINGVIEW_WEBHOOK_IPS)
    """Comma-separated source IPs accepted when enable_ip_whitelist is true."""

    # ========================================================================
    # Redis (rate limiting, trade log)
    # ========================================================================

    redis_url: str | None = None
    """
    Redis connection URL, e.g. ``redis://localhost:6379/0``.

    Notes:
        - Unset disables rate limiting and trade log storage
        - Trade log records are still written to the structured log
    """

    rate_limit_max_requests: int = Field(default=10, gt=0)
    rate_limit_window_seconds: int = Field(default=60, gt=0)
    rate_limit_fallback_mode: Literal["allow", "deny"] = "allow"
    trade_log_ttl_seconds: int = Field(default=30 * 24 * 60 * 60, gt=0)

    # ========================================================================
    # Paper Venue
    # ========================================================================

    paper_balance_available: Decimal = Field(default=Decimal("9000"), ge=0)
    paper_leverage: Decimal = Field(default=Decimal("10"), gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("position_mode")
    @classmethod
    def _validate_position_mode(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in _POSITION_MODES:
            raise ValueError(
                f"position_mode must be one of {sorted(_POSITION_MODES)}, got {value!r}"
            )
        return normalized

    @field_validator("futures_settle")
    @classmethod
    def _validate_settle(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def default_position_mode(self) -> PositionMode:
        return parse_position_mode({"mode": self.position_mode}, default=PositionMode.DUAL)

    @property
    def allowed_ip_list(self) -> list[str]:
        return [ip.strip() for ip in self.allowed_ips.split(",") if ip.strip()]

    def require_credentials(self) -> tuple[str, str]:
        """Return (api_key, api_secret) for live trading.

        Raises:
            ConfigurationError: Either credential is missing
        """
        if not self.gate_api_key or not self.gate_api_secret:
            raise ConfigurationError(
                "GATE_API_KEY and GATE_API_SECRET are required unless TEST_MODE is enabled"
            )
        return self.gate_api_key, self.gate_api_secret
