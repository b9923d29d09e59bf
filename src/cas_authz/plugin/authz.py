"""
cas_authz.plugin.authz

casbin authorization middleware.

Responsibilities:
- Derive the policy subject from the published CAS identity.
- Reject (401/403) or forward the request based on the enforcer's decision.
"""

from __future__ import annotations

from collections.abc import Callable

from starlette.requests import Request
from starlette.responses import Response

from cas_authz.errors import UnauthenticatedRequest, UnauthorizedRequest
from cas_authz.plugin.authn import get_attributes, get_username
from cas_authz.plugin.base import Handler
from cas_authz.plugin.enforcer import PolicyEnforcer
from cas_authz.settings import CasbinConfig

SubjectSelector = Callable[[Request], str]


def subject_selector(attr: str) -> SubjectSelector:
    if not attr:
        return get_username

    def select(request: Request) -> str:
        attributes = get_attributes(request)
        if not attributes:
            return ""
        values = attributes.get(attr) or []
        return values[0] if values else ""

    return select


class AuthorizationMiddleware:
    """
    Stateless request filter; must run after authentication has published
    the identity on the request.
    """

    def __init__(self, enforcer: PolicyEnforcer | None, subject: SubjectSelector) -> None:
        self.enforcer = enforcer
        self.subject = subject

    @classmethod
    def from_config(cls, cfg: CasbinConfig) -> AuthorizationMiddleware:
        return cls(PolicyEnforcer.build(cfg), subject_selector(cfg.subject_attr))

    def __call__(self, next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            if self.enforcer is None:
                raise UnauthorizedRequest()
            subject = self.subject(request)
            if not subject:
                raise UnauthenticatedRequest()
            if self.enforcer.check(subject):
                return await next_handler(request)
            raise UnauthorizedRequest()

        return handler
