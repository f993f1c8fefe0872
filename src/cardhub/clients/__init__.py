"""
cardhub.clients

HTTP client package.

Responsibilities:
- Identity client (session token lifecycle + change notifications).
- API client (profiles, role changes, activity logging, user management).
"""

from __future__ import annotations

from typing import Any

import httpx

from cardhub.errors import error_from_payload


def raise_for_error(r: httpx.Response) -> None:
    # Re-raise API error bodies as the matching `cardhub.errors` exception.
    if r.is_success:
        return
    try:
        payload: Any = r.json()
    except ValueError:
        payload = None
    raise error_from_payload(r.status_code, payload)


# --- Module Notes -----------------------------------------------------------
# Both clients take an injected `httpx.AsyncClient`, so tests can point them at the app
# through `httpx.ASGITransport` without a network.
