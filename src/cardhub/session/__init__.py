"""
cardhub.session

Client-side session layer.

Responsibilities:
- Reconcile the claims token and the profile record into one effective role.
- Hold the process-wide session state and notify subscribers of changes.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# `resolver.resolve_effective_role` is also used by the API's route gating so both sides
# apply the same precedence.
