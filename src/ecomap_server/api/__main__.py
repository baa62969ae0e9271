"""
ecomap_server.api.__main__

Entrypoint for running the API via `python -m ecomap_server.api`.

Responsibilities:
- Load settings from `ECOMAP_*` environment variables.
- Serve the app with uvicorn, leaving log formatting and access logging to structlog.
"""

from __future__ import annotations

import uvicorn

from ecomap_server.api.app import create_app
from ecomap_server.settings import get_settings


def main() -> None:
    settings = get_settings()

    # RequestContextMiddleware writes the access log; uvicorn's would duplicate it.
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
        access_log=False,
        proxy_headers=settings.env == "prod",
    )


if __name__ == "__main__":
    main()
