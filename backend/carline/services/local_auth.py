"""Local token auth for a single-user desktop session.

The launcher passes a token in CARLINE_LOCAL_TOKEN. The browser (or a
:class:`~carline.services.data_client.DataServiceClient`) sends it back in
the X-Local-Token header; the standalone graph page sends it as ``?token=``.

No CARLINE_LOCAL_TOKEN means no auth, so a dev frontend can reach the API
directly. CARLINE_NO_AUTH=true also turns auth off (the test suite sets it).
"""

from __future__ import annotations

import os
import secrets


def configured_token() -> str | None:
    """Token every protected request must carry, or None if auth is off.

    Read from the environment on each call so a restarted launcher's new
    token takes effect without reimporting the app.
    """
    if os.environ.get("CARLINE_NO_AUTH", "").lower() == "true":
        return None
    return os.environ.get("CARLINE_LOCAL_TOKEN") or None


def verify_local_token(presented: str | None, expected: str) -> bool:
    """Constant-time check of a presented token against ``expected``."""
    if not presented:
        return False
    return secrets.compare_digest(presented.encode(), expected.encode())
