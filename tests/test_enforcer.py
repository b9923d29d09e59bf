"""
tests.test_enforcer

casbin enforcer construction and fail-closed subject checks.
"""

from __future__ import annotations

import pytest

from cas_authz.errors import ConfigurationError, PolicyLoadError
from cas_authz.plugin.enforcer import PolicyEnforcer
from cas_authz.settings import CasbinConfig

RBAC_MODEL = """\
[request_definition]
r = sub, obj, act

[policy_definition]
p = sub, obj, act

[policy_effect]
e = some(where (p.eft == allow))

[matchers]
m = r.sub == p.sub && r.obj == p.obj && r.act == p.act
"""


def test_empty_model_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="invalid casbin model"):
        PolicyEnforcer.build(CasbinConfig(model="", policy="policy.csv"))


def test_missing_model_file_is_a_load_error(tmp_path) -> None:
    with pytest.raises(PolicyLoadError):
        PolicyEnforcer.build(CasbinConfig(model=str(tmp_path / "nope.conf"), policy=""))


def test_missing_policy_file_is_a_load_error(policy_files, tmp_path) -> None:
    model, _ = policy_files
    with pytest.raises(PolicyLoadError):
        PolicyEnforcer.build(CasbinConfig(model=model, policy=str(tmp_path / "nope.csv")))


def test_check_uses_policy(policy_files) -> None:
    model, policy = policy_files
    enforcer = PolicyEnforcer.build(CasbinConfig(model=model, policy=policy))

    assert enforcer.check("alice") is True
    assert enforcer.check("eng") is True
    assert enforcer.check("bob") is False


def test_evaluation_error_denies(tmp_path) -> None:
    # A three-token request definition cannot be evaluated with (subject, "*").
    model = tmp_path / "rbac.conf"
    policy = tmp_path / "rbac.csv"
    model.write_text(RBAC_MODEL)
    policy.write_text("p, alice, *, read\n")
    enforcer = PolicyEnforcer.build(CasbinConfig(model=str(model), policy=str(policy)))

    assert enforcer.check("alice") is False
