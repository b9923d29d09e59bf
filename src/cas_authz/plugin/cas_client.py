"""
cas_authz.plugin.cas_client

CAS client boundary (python-cas) adapted to the host's middleware shape.

Responsibilities:
- Validate the configured CAS server URL.
- Validate service tickets and keep the CAS identity in the session.
- Redirect unauthenticated requests to the CAS login page.
- Expose username/attribute accessors for the in-flight request.

Note:
- Requires Starlette's `SessionMiddleware` upstream of the plugin chain.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import cas
import httpx
import requests
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from cas_authz.errors import ConfigurationError, UnauthenticatedRequest
from cas_authz.observability.logging import get_logger
from cas_authz.plugin.base import Handler

log = get_logger(__name__)

SESSION_KEY = "cas"
TICKET_PARAM = "ticket"
CAS_PROTOCOL_VERSION = 3


def normalize_attributes(raw: Mapping[str, Any] | None) -> dict[str, list[str]]:
    # python-cas returns single-valued attributes as plain strings.
    attributes: dict[str, list[str]] = {}
    for name, value in (raw or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            attributes[name] = [str(v) for v in value if v is not None]
        else:
            attributes[name] = [str(value)]
    return attributes


class CasClient:
    """
    Session-handling CAS client built from a single server URL.

    `validate_session` and `require_login` are middlewares meant to run in
    that order; `username`/`attributes` read what they left in the session.
    """

    logout_path = "/logout"

    def __init__(self, server_url: str) -> None:
        self.server_url = server_url

    @classmethod
    def build(cls, url: str) -> CasClient:
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ConfigurationError(f"invalid CAS url {url!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ConfigurationError(f"invalid CAS url {url!r}")
        server_url = str(parsed)
        if not server_url.endswith("/"):
            server_url += "/"
        return cls(server_url)

    def _protocol_client(self, service_url: str | None = None) -> Any:
        # python-cas clients carry the service URL as state, so one per call.
        return cas.CASClient(
            version=CAS_PROTOCOL_VERSION,
            server_url=self.server_url,
            service_url=service_url,
        )

    def login_url(self, service_url: str) -> str:
        return self._protocol_client(service_url).get_login_url()

    def logout_url(self, redirect_url: str | None = None) -> str:
        return self._protocol_client().get_logout_url(redirect_url)

    @staticmethod
    def service_url(request: Request) -> str:
        return str(request.url.remove_query_params(TICKET_PARAM))

    def validate_ticket(self, ticket: str, service_url: str) -> tuple[str, dict[str, list[str]]]:
        """
        Blocking ticket validation; returns `("", {})` when the server rejects it.
        """
        try:
            username, attributes, _ = self._protocol_client(service_url).verify_ticket(ticket)
        except requests.RequestException as e:
            log.warning("cas_ticket_validation_error", error=str(e), service=service_url)
            return "", {}
        return (username or ""), normalize_attributes(attributes)

    def validate_session(self, next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            ticket = request.query_params.get(TICKET_PARAM)
            if ticket:
                service = self.service_url(request)
                username, attributes = await run_in_threadpool(
                    self.validate_ticket, ticket, service
                )
                if not username:
                    log.info("cas_ticket_rejected", service=service)
                    raise UnauthenticatedRequest("Invalid CAS ticket")
                request.session[SESSION_KEY] = {"username": username, "attributes": attributes}
                log.info("cas_ticket_validated", cas_user=username)
            return await next_handler(request)

        return handler

    def require_login(self, next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            if request.url.path == self.logout_path:
                return self.logout(request)
            if not self.username(request):
                return RedirectResponse(self.login_url(self.service_url(request)), status_code=302)
            return await next_handler(request)

        return handler

    def logout(self, request: Request) -> Response:
        request.session.pop(SESSION_KEY, None)
        return RedirectResponse(self.logout_url(str(request.base_url)), status_code=302)

    @staticmethod
    def username(request: Request) -> str:
        entry = request.session.get(SESSION_KEY) or {}
        return entry.get("username") or ""

    @staticmethod
    def attributes(request: Request) -> dict[str, list[str]]:
        entry = request.session.get(SESSION_KEY) or {}
        return normalize_attributes(entry.get("attributes"))


# --- Module Notes -----------------------------------------------------------
# The CAS server is only contacted during ticket validation; every other
# request is served from the signed session cookie.
