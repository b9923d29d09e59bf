"""
cas_authz.settings

Central configuration model (Pydantic / Pydantic Settings).

Responsibilities:
- Define the plugin configuration snapshot (`CasConfig`, `CasbinConfig`).
- Provide env-driven service settings for the app factory and entrypoint.
- Load the plugin configuration from a JSON file pushed by the host.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from cas_authz.errors import ConfigurationError


class CasbinConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    # Path to the casbin model file; empty disables authorization.
    model: str = ""
    policy: str = ""
    # Session attribute used as the casbin subject; empty means the CAS username.
    subject_attr: str = ""


class CasConfig(BaseModel):
    """
    Immutable plugin configuration snapshot.

    Mirrors the host config schema:
    `{url: str, casbin: {model: str, policy: str, subject_attr: str}}`.
    Replaced wholesale on reload, never mutated in place.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = ""
    casbin: CasbinConfig = Field(default_factory=CasbinConfig)


def load_plugin_config(path: str | Path) -> CasConfig:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read plugin config {path}: {e}") from e
    try:
        return CasConfig.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"invalid plugin config {path}: {e}") from e


class Settings(BaseSettings):
    """
    Service settings:
    - Env-driven (`CAS_AUTHZ_*`, nested keys separated by `__`)
    - Defaults safe for local dev
    """

    model_config = SettingsConfigDict(
        env_prefix="CAS_AUTHZ_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "cas-authz"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Session cookie carrying the validated CAS identity between requests.
    session_secret: str = Field(default="dev-secret-change-me", repr=False)
    session_cookie: str = "cas_session"

    # Plugin config; a JSON file, when given, takes precedence over `cas`.
    plugin_config_path: str | None = None
    cas: CasConfig = Field(default_factory=CasConfig)

    # Paths served without running the plugin chain.
    public_paths: tuple[str, ...] = ("/healthz",)

    def plugin_config(self) -> CasConfig:
        if self.plugin_config_path:
            return load_plugin_config(self.plugin_config_path)
        return self.cas


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
