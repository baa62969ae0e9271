"""
ecomap_server.api

HTTP API package.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, role map and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: body parsing and delegation to services; authorization runs in middleware.
