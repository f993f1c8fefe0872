"""
cardhub.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories for the identity,
  profile and activity-log collections.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Repositories play the role of the document store: get/set/append/query by collection.
