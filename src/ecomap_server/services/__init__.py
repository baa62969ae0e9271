"""
ecomap_server.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and invariant checks.
- Validate inputs before touching the store; translate failures into domain errors.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services depend on the `Store` protocol and `CredentialService` only, so tests can drive
# them with a scripted store.
