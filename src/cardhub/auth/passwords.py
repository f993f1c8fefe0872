"""
cardhub.auth.passwords

Password hashing for the identity store (bcrypt, used directly).
"""

from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes; truncate explicitly so 4.x does not raise.
_MAX_BYTES = 72

# Verified against when the email is unknown, so response time does not reveal it.
_DUMMY_HASH = bcrypt.hashpw(b"cardhub-timing-equalizer", bcrypt.gensalt()).decode()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode()[:_MAX_BYTES], bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str | None) -> bool:
    candidate = password.encode()[:_MAX_BYTES]
    if hashed is None:
        bcrypt.checkpw(candidate, _DUMMY_HASH.encode())
        return False
    return bcrypt.checkpw(candidate, hashed.encode())
