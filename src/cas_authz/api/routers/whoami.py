"""
cas_authz.api.routers.whoami

Echo of the identity the CAS plugin published for the current request.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cas_authz.plugin.authn import (
    ATTR_HEADER_PREFIX,
    USER_HEADER,
    current_attributes,
    current_username,
)

router = APIRouter(prefix="/v1", tags=["identity"])


class WhoAmIResponse(BaseModel):
    username: str
    attributes: dict[str, list[str]] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)


@router.get("/whoami", response_model=WhoAmIResponse)
async def whoami(request: Request) -> WhoAmIResponse:
    prefix = ATTR_HEADER_PREFIX.lower()
    mirrored = {
        name: value
        for name, value in request.headers.items()
        if name == USER_HEADER.lower() or name.startswith(prefix)
    }
    return WhoAmIResponse(
        username=current_username(),
        attributes=dict(current_attributes() or {}),
        headers=mirrored,
    )
