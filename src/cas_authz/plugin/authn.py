"""
cas_authz.plugin.authn

CAS authentication middleware.

Responsibilities:
- Chain the CAS client's session validation and login enforcement.
- Publish the authenticated identity to downstream handlers:
  request state, context variables and `X-CAS-*` request headers.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from contextvars import ContextVar

from starlette.requests import Request
from starlette.responses import Response

from cas_authz.observability.logging import bind_identity, unbind_identity
from cas_authz.plugin.base import Handler, Middleware
from cas_authz.plugin.cas_client import CasClient

USER_HEADER = "X-CAS-User"
ATTR_HEADER_PREFIX = "X-CAS-Attr-"

# RFC 9110 token; attribute names outside it cannot become header names.
_HEADER_TOKEN = re.compile(r"[!#$%&'*+.^_`|~0-9A-Za-z-]+")

CAS_USERNAME: ContextVar[str] = ContextVar("cas_username", default="")
CAS_ATTRIBUTES: ContextVar[Mapping[str, list[str]] | None] = ContextVar(
    "cas_attributes", default=None
)


def _set_headers(request: Request, values: Mapping[str, str]) -> None:
    # Replaces same-named headers, like http.Header.Set; ASGI names are lowercase bytes.
    names = {name.lower().encode("latin-1") for name in values}
    headers = [(k, v) for k, v in request.scope["headers"] if k not in names]
    headers.extend(
        (name.lower().encode("latin-1"), value.encode("utf-8")) for name, value in values.items()
    )
    request.scope["headers"] = headers


def identity_headers(username: str, attributes: Mapping[str, list[str]]) -> dict[str, str]:
    headers = {USER_HEADER: username}
    for name, values in attributes.items():
        # Skipped names stay available through request state and CAS_ATTRIBUTES.
        if not _HEADER_TOKEN.fullmatch(name):
            continue
        headers[f"{ATTR_HEADER_PREFIX}{name}"] = " ".join(values)
    return headers


def publish_identity(client: CasClient) -> Middleware:
    def middleware(next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            username = client.username(request)
            attributes = client.attributes(request)

            request.state.cas_username = username
            request.state.cas_attributes = attributes
            _set_headers(request, identity_headers(username, attributes))
            # Rebuild so cached header views see the mirrored values.
            forwarded = Request(request.scope, request.receive)

            user_token = CAS_USERNAME.set(username)
            attrs_token = CAS_ATTRIBUTES.set(attributes)
            log_tokens = bind_identity(username)
            try:
                return await next_handler(forwarded)
            finally:
                unbind_identity(log_tokens)
                CAS_ATTRIBUTES.reset(attrs_token)
                CAS_USERNAME.reset(user_token)

        return handler

    return middleware


def authentication_middleware(client: CasClient) -> Middleware:
    publish = publish_identity(client)

    def middleware(next_handler: Handler) -> Handler:
        return client.validate_session(client.require_login(publish(next_handler)))

    return middleware


def get_username(request: Request) -> str:
    return getattr(request.state, "cas_username", "")


def get_attributes(request: Request) -> Mapping[str, list[str]] | None:
    return getattr(request.state, "cas_attributes", None)


def current_username() -> str:
    return CAS_USERNAME.get()


def current_attributes() -> Mapping[str, list[str]] | None:
    return CAS_ATTRIBUTES.get()


# --- Module Notes -----------------------------------------------------------
# Headers are for downstream components that only see the raw request (proxied
# apps, WSGI bridges); in-process code should prefer the accessors above.
