"""
ecomap_server.observability

Observability package.

Responsibilities:
- structlog configuration shared by the API process and Alembic-free tooling.
- Request id propagation and the per-request access log.
"""
