"""
cas_authz.api.routers.health

Health endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`), served outside the plugin chain.
- Provide plugin state (`/readyz`): not ready while the plugin fails every request.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from cas_authz.plugin import PipelineMode

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> dict[str, str]:
    # Readiness: a plugin stuck failing every request should take the pod out of rotation.
    mode = request.app.state.cas_plugin.mode
    if mode is PipelineMode.ALWAYS_ERROR:
        raise HTTPException(
            status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="CAS plugin misconfigured"
        )
    return {"status": "ready", "mode": mode.value}


# --- Module Notes -----------------------------------------------------------
# Only /healthz is public by default; add /readyz to `public_paths` when the
# platform's probe cannot authenticate against CAS.
