"""
tests.conftest

Shared fixtures.

Responsibilities:
- Fake the CAS server at the python-cas boundary.
- Write casbin model/policy files for real enforcement.
- Build apps and HTTP clients around a given plugin config.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

import cas
import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from cas_authz.api.app import create_app
from cas_authz.settings import CasbinConfig, CasConfig, Settings

CAS_URL = "https://cas.example.org/cas"

MODEL_CONF = """\
[request_definition]
r = sub, obj

[policy_definition]
p = sub, obj

[policy_effect]
e = some(where (p.eft == allow))

[matchers]
m = r.sub == p.sub && r.obj == p.obj
"""

POLICY_CSV = """\
p, alice, *
p, eng, *
"""

# ticket -> (username, attributes) as python-cas returns them
TICKETS: dict[str, tuple[str, dict[str, Any]]] = {
    "ST-alice": ("alice", {"dept": ["eng", "ops"], "mail": "alice@example.org"}),
    "ST-bob": ("bob", {"dept": "sales"}),
    "ST-carol": ("carol", {}),
}


class FakeCASClient:
    """
    Stand-in for `cas.CASClient(version=3, ...)`; records verified tickets.
    """

    verified: list[tuple[str, str]] = []

    def __init__(self, *, version: int, server_url: str, service_url: str | None = None) -> None:
        self.version = version
        self.server_url = server_url
        self.service_url = service_url

    def get_login_url(self) -> str:
        return f"{self.server_url}login?{urlencode({'service': self.service_url})}"

    def get_logout_url(self, redirect_url: str | None = None) -> str:
        url = f"{self.server_url}logout"
        if redirect_url:
            url += "?" + urlencode({"service": redirect_url})
        return url

    def verify_ticket(self, ticket: str) -> tuple[str | None, dict[str, Any], None]:
        FakeCASClient.verified.append((ticket, self.service_url or ""))
        if ticket in TICKETS:
            username, attributes = TICKETS[ticket]
            return username, attributes, None
        return None, {}, None


@pytest.fixture(autouse=True)
def fake_cas(monkeypatch: pytest.MonkeyPatch) -> type[FakeCASClient]:
    FakeCASClient.verified = []
    monkeypatch.setattr(cas, "CASClient", FakeCASClient)
    return FakeCASClient


@pytest.fixture
def policy_files(tmp_path: Path) -> tuple[str, str]:
    model = tmp_path / "model.conf"
    policy = tmp_path / "policy.csv"
    model.write_text(MODEL_CONF)
    policy.write_text(POLICY_CSV)
    return str(model), str(policy)


@pytest.fixture
def authz_config(policy_files: tuple[str, str]) -> CasConfig:
    model, policy = policy_files
    return CasConfig(url=CAS_URL, casbin=CasbinConfig(model=model, policy=policy))


@pytest.fixture
def make_app() -> Callable[[CasConfig], FastAPI]:
    def _make(config: CasConfig) -> FastAPI:
        return create_app(settings=Settings(env="test", cas=config))

    return _make


@pytest_asyncio.fixture
async def client_for() -> AsyncIterator[Callable[[FastAPI], httpx.AsyncClient]]:
    clients: list[httpx.AsyncClient] = []

    def _client(app: FastAPI) -> httpx.AsyncClient:
        transport = httpx.ASGITransport(app=app)
        client = httpx.AsyncClient(transport=transport, base_url="http://test")
        clients.append(client)
        return client

    yield _client
    for client in clients:
        await client.aclose()
