"""Per-service HTTP audit log.

One line per request: method, path, status, the caller's claimed user id,
client address and duration. Denied requests (401/403) are logged at
WARNING so they stand out when grepping an authorization service's log.
"""
from __future__ import annotations

import logging
from pathlib import Path
from time import time
from typing import Optional

from fastapi import FastAPI, Request

from .auth import TokenCodec
from .config import get_settings

_DENIED = (401, 403)


def _build_logger(service_name: str) -> logging.Logger:
    logger = logging.getLogger(f"audit.{service_name}")
    if logger.handlers:
        return logger

    log_dir = Path(get_settings().audit_log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.setLevel(logging.INFO)
    handler = logging.FileHandler(log_dir / f"{service_name}.log")
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    return logger


def claimed_user_id(request: Request) -> Optional[str]:
    """userId from the bearer token, unverified; only fit for log lines."""

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    claims = TokenCodec.peek(token)
    if not claims:
        return None
    user_id = claims.get("userId")
    return str(user_id) if user_id else None


def add_audit_middleware(app: FastAPI, service_name: str) -> None:
    logger = _build_logger(service_name)

    @app.middleware("http")
    async def audit_logger(request: Request, call_next):  # type: ignore[override]
        start = time()
        response = await call_next(request)
        duration_ms = (time() - start) * 1000
        logger.log(
            logging.WARNING if response.status_code in _DENIED else logging.INFO,
            "%s %s | status=%s | user=%s | client=%s | duration=%.2fms",
            request.method,
            request.url.path,
            response.status_code,
            claimed_user_id(request) or "anonymous",
            request.client.host if request.client else "unknown",
            duration_ms,
        )
        return response
