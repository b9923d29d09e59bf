"""
cas_authz.api.app

FastAPI app factory.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Load the CAS plugin into the plugin chain and expose it for reloads.
- Reload the plugin config on SIGHUP without blocking the event loop.
"""

from __future__ import annotations

import asyncio
import signal

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from cas_authz.api.routers.health import router as health_router
from cas_authz.api.routers.whoami import router as whoami_router
from cas_authz.errors import ConfigurationError
from cas_authz.observability.logging import configure_logging, get_logger
from cas_authz.observability.middleware import RequestContextMiddleware
from cas_authz.plugin import CasPlugin, PluginChainMiddleware
from cas_authz.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, reload_on_sighup: bool = False) -> FastAPI:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    plugin = CasPlugin(settings.plugin_config())

    app = FastAPI(title="CAS authz", version="0.1.0")
    app.state.cas_plugin = plugin

    # Starlette runs the last-added middleware first: session, then request
    # context, then the plugin chain.
    app.add_middleware(PluginChainMiddleware, plugins=[plugin], public_paths=settings.public_paths)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        https_only=settings.env == "prod",
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(whoami_router)

    if reload_on_sighup:

        @app.on_event("startup")
        async def _install_reload() -> None:
            install_reload_handler(app, settings, asyncio.get_running_loop())

        @app.on_event("shutdown")
        async def _remove_reload() -> None:
            remove_reload_handler(asyncio.get_running_loop())

    log.info("app_created", env=settings.env, cas_mode=plugin.mode.value)
    return app


def reload_plugin(app: FastAPI, settings: Settings) -> bool:
    """
    Re-read the plugin config and push it to the running plugin.

    Returns False, leaving the current pipeline untouched, when the config
    file cannot be read.
    """
    try:
        config = settings.plugin_config()
    except ConfigurationError as e:
        log.error("plugin_config_reload_failed", error=str(e))
        return False
    app.state.cas_plugin.update(config)
    return True


def install_reload_handler(
    app: FastAPI, settings: Settings, loop: asyncio.AbstractEventLoop
) -> bool:
    """
    Reload the plugin config on SIGHUP.

    The signal is delivered through the event loop and the reload runs in the
    default executor: `CasPlugin.update` takes the write lock and reads the
    casbin files, neither of which may happen on the thread serving requests.
    """
    if not hasattr(signal, "SIGHUP"):
        return False

    def _on_sighup() -> None:
        log.info("plugin_reload_requested")
        loop.run_in_executor(None, reload_plugin, app, settings)

    loop.add_signal_handler(signal.SIGHUP, _on_sighup)
    return True


def remove_reload_handler(loop: asyncio.AbstractEventLoop) -> None:
    if hasattr(signal, "SIGHUP"):
        loop.remove_signal_handler(signal.SIGHUP)
