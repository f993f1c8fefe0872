"""
cardhub.auth

Authentication/authorization package.

Responsibilities:
- Claims-token helpers and validation.
- Password hashing.
- FastAPI auth dependencies (Caller + route gating tiers).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# `jwt` and `models` are shared with the client session layer; `deps` is API-only.
