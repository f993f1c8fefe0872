"""
cardhub.identity

Identity store package.

Responsibilities:
- System of record for principals, credentials and custom claims.
- Session token issuing, verification and refresh.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Everything else in the service treats this package as an external collaborator and
# only goes through `IdentityStore`.
