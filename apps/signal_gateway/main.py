"""
Signal Gateway FastAPI application.

Endpoints:
- POST /api/v1/webhook - Execute a trading signal
- GET /health - Health check
- GET /metrics - Prometheus metrics

Environment Variables:
    GATE_API_KEY / GATE_API_SECRET: Gate.io API credentials (live mode)
    TEST_MODE: Use the in-memory paper venue (true/false, default: false)
    FUTURES_SETTLE: Settlement currency (default: usdt)
    POSITION_MODE: dual_long_short or single (default: dual_long_short)
    DEFAULT_LEVERAGE: Fallback leverage (default: 1)
    WEBHOOK_SECRET: Shared secret expected in the payload
    ENABLE_IP_WHITELIST: Only accept TradingView source IPs (default: false)
    REDIS_URL: Enables rate limiting and trade log storage
    LOG_LEVEL: Logging level (default: INFO)

Usage:
    # Paper trading
    $ TEST_MODE=true uvicorn apps.signal_gateway.main:app --reload --port 8010

    # Live
    $ uvicorn apps.signal_gateway.main:app --host 0.0.0.0 --port 8010
"""

import uvicorn

from apps.signal_gateway.app_factory import create_app
from apps.signal_gateway.config import Settings

settings = Settings()

app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(
        "apps.signal_gateway.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
