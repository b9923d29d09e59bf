"""
cas_authz.plugin.cas_plugin

The CAS plugin loaded into the host chain.

Responsibilities:
- Compose authentication then authorization into one middleware.
- Degrade to authentication-only when the policy cannot be loaded.
- Fail every request with 500 when the CAS URL is unusable.
- Hot-reload configuration without exposing a half-built pipeline.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from cas_authz.errors import ConfigurationError, PolicyLoadError
from cas_authz.observability.logging import get_logger
from cas_authz.plugin.authn import authentication_middleware
from cas_authz.plugin.authz import AuthorizationMiddleware
from cas_authz.plugin.base import Handler, Middleware, Plugin, RWLock, internal_error_middleware
from cas_authz.plugin.cas_client import CasClient
from cas_authz.settings import CasConfig

log = get_logger(__name__)

PRIORITY = -1


class PipelineMode(str, enum.Enum):
    ALWAYS_ERROR = "always_error"
    AUTH_ONLY = "auth_only"
    AUTH_AND_AUTHZ = "auth_and_authz"


@dataclass(frozen=True, slots=True)
class Pipeline:
    # Swapped as one reference so config and middleware never disagree.
    config: CasConfig
    mode: PipelineMode
    middleware: Middleware


def build_pipeline(config: CasConfig) -> Pipeline:
    try:
        client = CasClient.build(config.url)
    except ConfigurationError as e:
        log.error("cas_client_unavailable", error=str(e))
        return Pipeline(config, PipelineMode.ALWAYS_ERROR, internal_error_middleware)

    authn = authentication_middleware(client)

    try:
        authz = AuthorizationMiddleware.from_config(config.casbin)
    except (ConfigurationError, PolicyLoadError) as e:
        log.warning("policy_enforcer_unavailable", error=str(e), model=config.casbin.model)
        return Pipeline(config, PipelineMode.AUTH_ONLY, authn)

    def middleware(next_handler: Handler) -> Handler:
        return authn(authz(next_handler))

    return Pipeline(config, PipelineMode.AUTH_AND_AUTHZ, middleware)


class CasPlugin(Plugin):
    """
    States:
    - ALWAYS_ERROR: CAS client could not be built; every request gets 500.
    - AUTH_ONLY: CAS authentication only; no policy check runs.
    - AUTH_AND_AUTHZ: CAS authentication, then the casbin check.

    `initialize` runs at construction and on every `update`.
    """

    def __init__(self, config: CasConfig) -> None:
        self._lock = RWLock()
        self._config = config
        self._pipeline: Pipeline | None = None
        self.initialize()

    def initialize(self) -> None:
        with self._lock.write():
            self._rebuild()

    def update(self, config: CasConfig) -> None:
        with self._lock.write():
            self._config = config
            self._rebuild()

    def _rebuild(self) -> None:
        # Caller holds the write lock.
        pipeline = build_pipeline(self._config)
        self._pipeline = pipeline
        log.info("cas_plugin_initialized", mode=pipeline.mode.value, cas_url=pipeline.config.url)

    def priority(self) -> int:
        return PRIORITY

    def process(self, next_handler: Handler) -> Handler:
        with self._lock.read():
            pipeline = self._pipeline
        return pipeline.middleware(next_handler)

    @property
    def config(self) -> CasConfig:
        with self._lock.read():
            return self._pipeline.config

    @property
    def mode(self) -> PipelineMode:
        with self._lock.read():
            return self._pipeline.mode


# --- Module Notes -----------------------------------------------------------
# The read lock only covers capturing the pipeline reference; composing and
# running the handler happen outside it so reloads never wait on requests.
