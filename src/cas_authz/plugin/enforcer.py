"""
cas_authz.plugin.enforcer

casbin boundary used by the authorization middleware.

Responsibilities:
- Build a casbin `Enforcer` from model/policy file paths.
- Answer allow/deny for a subject against the wildcard resource.
"""

from __future__ import annotations

import casbin

from cas_authz.errors import ConfigurationError, PolicyLoadError
from cas_authz.settings import CasbinConfig

# Only subjects are distinguished; every check targets this object.
WILDCARD_RESOURCE = "*"


class PolicyEnforcer:
    def __init__(self, enforcer: casbin.Enforcer) -> None:
        self._enforcer = enforcer

    @classmethod
    def build(cls, cfg: CasbinConfig) -> PolicyEnforcer:
        if not cfg.model:
            raise ConfigurationError("invalid casbin model")
        try:
            enforcer = casbin.Enforcer(cfg.model, cfg.policy)
        except Exception as e:  # noqa: BLE001
            # casbin surfaces missing/malformed files as assorted builtin errors.
            raise PolicyLoadError(str(e)) from e
        return cls(enforcer)

    def check(self, subject: str) -> bool:
        try:
            return bool(self._enforcer.enforce(subject, WILDCARD_RESOURCE))
        except Exception:  # noqa: BLE001
            # Evaluation errors deny.
            return False


# --- Module Notes -----------------------------------------------------------
# Policy changes are picked up by rebuilding the enforcer through
# `CasPlugin.update`; nothing here watches the files.
