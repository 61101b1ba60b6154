"""
Request signing for the Gate.io API v4.

Gate.io authenticates private endpoints with HMAC-SHA512 over a canonical
string built from the request:

    METHOD \\n PATH \\n QUERY \\n SHA512(BODY) \\n TIMESTAMP

and expects the result in the ``SIGN`` header alongside ``KEY`` and
``Timestamp``.

See: https://www.gate.io/docs/developers/apiv4/#authentication
"""

import hashlib
import hmac
import time


def hash_payload(payload: str) -> str:
    """Hex SHA-512 of the request body (empty string for bodiless requests)."""
    return hashlib.sha512((payload or "").encode("utf-8")).hexdigest()


def build_sign_string(method: str, path: str, query: str, payload: str, timestamp: int) -> str:
    """Build the canonical string that gets signed.

    Args:
        method: Upper-case HTTP method
        path: Request path including the ``/api/v4`` prefix, without query
        query: Raw query string without the leading ``?`` (may be empty)
        payload: Serialized JSON body (empty for GET/DELETE)
        timestamp: Unix seconds

    Examples:
        >>> build_sign_string("GET", "/api/v4/futures/usdt/accounts", "", "", 1700000000).split("\\n")[:3]
        ['GET', '/api/v4/futures/usdt/accounts', '']
    """
    return f"{method.upper()}\n{path}\n{query}\n{hash_payload(payload)}\n{timestamp}"


def sign_request(
    secret: str,
    method: str,
    path: str,
    query: str = "",
    payload: str = "",
    timestamp: int | None = None,
) -> tuple[str, int]:
    """Compute the request signature.

    Returns:
        Tuple of (hex signature, timestamp used)
    """
    ts = int(time.time()) if timestamp is None else timestamp
    sign_string = build_sign_string(method, path, query, payload, ts)
    signature = hmac.new(secret.encode("utf-8"), sign_string.encode("utf-8"), hashlib.sha512).hexdigest()
    return signature, ts


def auth_headers(
    api_key: str,
    secret: str,
    method: str,
    path: str,
    query: str = "",
    payload: str = "",
    timestamp: int | None = None,
) -> dict[str, str]:
    """Headers for an authenticated request."""
    signature, ts = sign_request(secret, method, path, query, payload, timestamp)
    return {
        "KEY": api_key,
        "SIGN": signature,
        "Timestamp": str(ts),
    }
