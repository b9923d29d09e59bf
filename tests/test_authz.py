"""
tests.test_authz

Subject selection and the 401/403 authorization filter.
"""

from __future__ import annotations

from typing import Any

import pytest
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from cas_authz.errors import PolicyLoadError, UnauthenticatedRequest, UnauthorizedRequest
from cas_authz.plugin.authz import AuthorizationMiddleware, subject_selector
from cas_authz.settings import CasbinConfig


class AllowList:
    def __init__(self, *subjects: str) -> None:
        self.subjects = set(subjects)
        self.checked: list[str] = []

    def check(self, subject: str) -> bool:
        self.checked.append(subject)
        return subject in self.subjects


def _request(username: str = "", attributes: dict[str, list[str]] | None = None) -> Request:
    state: dict[str, Any] = {"cas_username": username}
    if attributes is not None:
        state["cas_attributes"] = attributes
    return Request({"type": "http", "method": "GET", "path": "/", "headers": [], "state": state})


async def _downstream(request: Request) -> Response:
    return PlainTextResponse("ok")


def test_selector_defaults_to_username() -> None:
    select = subject_selector("")
    assert select(_request("alice", {"uid": ["a1"]})) == "alice"


def test_selector_uses_first_attribute_value() -> None:
    select = subject_selector("dept")
    assert select(_request("alice", {"dept": ["eng", "ops"]})) == "eng"


def test_selector_missing_attribute_is_empty() -> None:
    select = subject_selector("dept")
    assert select(_request("alice", {"mail": ["a@example.org"]})) == ""
    assert select(_request("alice", {"dept": []})) == ""
    assert select(_request("alice")) == ""


@pytest.mark.asyncio
async def test_no_enforcer_forbids_everything() -> None:
    handler = AuthorizationMiddleware(None, subject_selector(""))(_downstream)
    with pytest.raises(UnauthorizedRequest) as exc:
        await handler(_request("alice"))
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_empty_subject_is_unauthenticated() -> None:
    enforcer = AllowList("alice")
    handler = AuthorizationMiddleware(enforcer, subject_selector("dept"))(_downstream)
    with pytest.raises(UnauthenticatedRequest) as exc:
        await handler(_request("alice", {}))
    assert exc.value.status_code == 401
    assert enforcer.checked == []


@pytest.mark.asyncio
async def test_allowed_subject_reaches_downstream() -> None:
    handler = AuthorizationMiddleware(AllowList("eng"), subject_selector("dept"))(_downstream)
    response = await handler(_request("bob", {"dept": ["eng"]}))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_denied_subject_is_forbidden() -> None:
    handler = AuthorizationMiddleware(AllowList("alice"), subject_selector(""))(_downstream)
    with pytest.raises(UnauthorizedRequest):
        await handler(_request("bob"))


def test_from_config_propagates_load_errors(tmp_path) -> None:
    with pytest.raises(PolicyLoadError):
        AuthorizationMiddleware.from_config(CasbinConfig(model=str(tmp_path / "missing.conf")))


@pytest.mark.asyncio
async def test_from_config_enforces_policy(policy_files) -> None:
    model, policy = policy_files
    middleware = AuthorizationMiddleware.from_config(CasbinConfig(model=model, policy=policy))
    handler = middleware(_downstream)

    assert (await handler(_request("alice"))).status_code == 200
    with pytest.raises(UnauthorizedRequest):
        await handler(_request("bob"))
