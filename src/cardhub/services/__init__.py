"""
cardhub.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and authorization decisions.
- Orchestrate calls across the identity store, repositories and the audit logger.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services raise `cardhub.errors` exceptions; the API layer renders them.
