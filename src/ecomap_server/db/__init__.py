"""
ecomap_server.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, transaction handles, repositories and the
  `SqlStore` that implements the service layer's `Store` protocol.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services depend on the `Store` protocol only; nothing outside this package imports ORM rows.
