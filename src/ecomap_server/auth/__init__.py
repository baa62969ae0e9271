"""
ecomap_server.auth

Authentication/authorization package.

Responsibilities:
- Password hashing and JWT issuing/validation (credential service).
- Role + ownership rule evaluation and the HTTP middleware applying it.
- Typed access to the authenticated `Principal`.
"""

# Package marker.
