"""Logging configuration"""

import logging
import os
import time
import uuid
from typing import Callable
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


def setup_logging() -> logging.Logger:
    """Configure JSON-style logging

    LOG_LEVEL selects the root level (default: INFO).
    """
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": %(message)s}',
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    return logging.getLogger("api_server")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request logging with a short request id (an incoming X-Request-ID is kept)

    For event streams the duration covers the time until headers are sent,
    not the whole stream.
    """

    def __init__(self, app: FastAPI):
        super().__init__(app)
        self.logger = logging.getLogger("api_server")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start_time = time.time()
        request.state.request_id = request_id

        response = await call_next(request)

        log_data = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.time() - start_time) * 1000, 2),
            "ip": request.client.host if request.client else "unknown",
        }

        if response.status_code >= 500:
            self.logger.error(str(log_data))
        elif response.status_code >= 400:
            self.logger.warning(str(log_data))
        else:
            self.logger.info(str(log_data))

        response.headers["X-Request-ID"] = request_id
        return response
