"""
cas_authz.plugin.host

Starlette adapter that runs a plugin chain in front of the app.

Responsibilities:
- Order plugins by priority and ask each for its handler per request.
- Render HTTP errors raised inside the chain as JSON responses.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from cas_authz.plugin.base import Handler, Plugin


class PluginChainMiddleware(BaseHTTPMiddleware):
    """
    Lowest priority is outermost. `process` is called on every request so a
    plugin reload takes effect from the next request on.
    """

    def __init__(
        self,
        app: ASGIApp,
        plugins: Sequence[Plugin],
        public_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self.plugins = sorted(plugins, key=lambda p: p.priority())
        self.public_paths = frozenset(public_paths)

    def build_handler(self, call_next: Handler) -> Handler:
        handler = call_next
        for plugin in reversed(self.plugins):
            handler = plugin.process(handler)
        return handler

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.public_paths:
            return await call_next(request)
        try:
            return await self.build_handler(call_next)(request)
        except HTTPException as e:
            return JSONResponse({"detail": e.detail}, status_code=e.status_code, headers=e.headers)
