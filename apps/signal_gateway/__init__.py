"""
Signal Gateway.

Receives trading signals over HTTP (TradingView-style webhooks) and executes
them as market orders on Gate.io perpetual futures.

Key Features:
- Percentage-of-balance sizing with balance/leverage fallback chains
- Open/close long/short in dual and single position mode
- One execution at a time per instrument, in arrival order
- IP allow-list, payload secret and per-IP rate limiting
- Paper venue for TEST_MODE

Components:
- config: Pydantic Settings
- schemas: Webhook payload and response models
- auth / rate_limit: Request admission
- trade_log: Audit trail in Redis and the structured log
- routes: webhook and health endpoints
"""

__version__ = "0.1.0"
