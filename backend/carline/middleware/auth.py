"""Local authentication middleware.

Checks the X-Local-Token header (or a ``token`` query parameter, used by the
standalone graph page) on all /api/* paths except /api/health.
"""

from __future__ import annotations

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from carline.services.local_auth import configured_token, verify_local_token

logger = logging.getLogger(__name__)

_PUBLIC_PATHS = {"/api/health"}


def _request_token(request: Request) -> str:
    return request.headers.get("X-Local-Token") or request.query_params.get("token", "")


class LocalAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path

        # Static files are never protected
        if not path.startswith("/api/") or path in _PUBLIC_PATHS:
            return await call_next(request)

        expected = configured_token()
        if expected is None:
            return await call_next(request)

        if not verify_local_token(_request_token(request), expected):
            logger.warning("Rejected %s %s: bad local token", request.method, path)
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid or missing local auth token"},
            )

        return await call_next(request)
