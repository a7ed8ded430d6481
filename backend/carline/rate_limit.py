"""Shared slowapi limiter for the catalog write endpoints.

Lives in its own module so routers and ``main`` can both import it.
Reads are never limited. Writes share one budget per client address, set
by CARLINE_WRITE_LIMIT (slowapi syntax, e.g. ``"10/minute"``) and read on
each request. CARLINE_NO_RATE_LIMIT=true switches the limiter off.
"""

from __future__ import annotations

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

DEFAULT_WRITE_LIMIT = "30/minute"


def rate_limiting_enabled() -> bool:
    return os.environ.get("CARLINE_NO_RATE_LIMIT", "").lower() != "true"


def write_limit() -> str:
    """Limit applied to POST /model/add and /tech/add."""
    return os.environ.get("CARLINE_WRITE_LIMIT", "").strip() or DEFAULT_WRITE_LIMIT


limiter = Limiter(key_func=get_remote_address, enabled=rate_limiting_enabled())
