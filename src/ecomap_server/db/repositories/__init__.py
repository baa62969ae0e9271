"""
ecomap_server.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer, one per table family.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories only read `AsyncSession`; capacity and association rules live in services.
