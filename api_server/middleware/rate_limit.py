"""Rate limiting configuration"""

import os
from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded


def get_client_ip(request: Request) -> str:
    """Get client IP address, handling proxies"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


# Limits are keyed per client IP
limiter = Limiter(
    key_func=get_client_ip,
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() != "false",
)


def setup_rate_limit(app: FastAPI) -> None:
    """Attach the limiter and its 429 handler to the app"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def get_rate_limit_string() -> str:
    """Per-minute limit from RATE_LIMIT_PER_MINUTE (default: 30)"""
    per_minute = os.getenv("RATE_LIMIT_PER_MINUTE", "30")
    return f"{per_minute}/minute"
