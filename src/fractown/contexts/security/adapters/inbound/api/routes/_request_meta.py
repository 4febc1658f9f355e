from __future__ import annotations

from starlette.requests import Request

_UNKNOWN = "unknown"


def client_ip(request: Request) -> str:
    """
    Return client IP reported by ASGI server or `unknown`.

    Args:
        request: Incoming request.
    Returns:
        str: Client host string.
    Assumptions:
        Proxy header handling is configured at ASGI server level (`--proxy-headers`).
    Raises:
        None.
    Side Effects:
        None.
    """
    if request.client is None or not request.client.host:
        return _UNKNOWN
    return request.client.host


def client_user_agent(request: Request) -> str:
    return request.headers.get("user-agent", _UNKNOWN)
