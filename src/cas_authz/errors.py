"""
cas_authz.errors

Error taxonomy for the plugin.

Responsibilities:
- Configuration-time failures (`ConfigurationError`, `PolicyLoadError`).
- Request-time rejections mapped to HTTP status codes (401/403).
"""

from __future__ import annotations

from starlette.exceptions import HTTPException
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN


class PluginError(Exception):
    pass


class ConfigurationError(PluginError):
    """
    Malformed CAS URL, empty policy model path or unreadable plugin config.
    """


class PolicyLoadError(PluginError):
    """
    Policy model/policy files missing or malformed.
    """


class UnauthenticatedRequest(HTTPException):
    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(status_code=HTTP_401_UNAUTHORIZED, detail=detail)


class UnauthorizedRequest(HTTPException):
    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status_code=HTTP_403_FORBIDDEN, detail=detail)


# --- Module Notes -----------------------------------------------------------
# Request-time errors subclass Starlette's HTTPException so the host chain
# (`plugin.host.PluginChainMiddleware`) can render them without a lookup table.
