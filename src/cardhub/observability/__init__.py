"""
cardhub.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The operational alert channel for audit-write failures is the `cardhub.alerts` logger.
