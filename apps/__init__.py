"""
Apps package - FastAPI services.

- signal_gateway: webhook intake and Gate.io futures signal execution
"""
