"""
cas_authz.api.__main__

Entrypoint for running the service via `python -m cas_authz.api`.

Responsibilities:
- Load settings.
- Create the app, with the plugin config reloaded on SIGHUP.
- Start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import uvicorn

from cas_authz.api.app import create_app
from cas_authz.settings import get_settings


def main() -> None:
    settings = get_settings()
    # The SIGHUP handler is installed on uvicorn's loop at startup.
    app = create_app(settings=settings, reload_on_sighup=True)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# For production, run under a process manager that forwards SIGHUP on config
# changes (e.g. `systemctl reload`).
