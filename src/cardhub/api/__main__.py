"""
cardhub.api.__main__

`cardhub-api` / `python -m cardhub.api`: serve the CardHub API with uvicorn.
"""

from __future__ import annotations

import uvicorn

from cardhub.api.app import create_app
from cardhub.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        # Activity entries record the peer address; only rewrite it behind a trusted proxy.
        proxy_headers=settings.trust_forwarded_for,
        log_config=None,  # structlog owns log formatting
    )


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# Tables are created on startup only in dev/test; with `CARDHUB_ENV=prod` the schema comes
# from Alembic migrations (`alembic/env.py`).
