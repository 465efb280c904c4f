"""
Connection API routes — OAuth connect/callback, list connections, disconnect.

Route prefix: /api
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from auth.dependencies import get_current_user_id
from config.settings import config
from connectors.base import Platform
from connectors.errors import CallbackError, UnsupportedPlatform
from connectors.lifecycle import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connections"])


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


def _state_cookie(platform: str) -> str:
    return f"oauth_state_{platform}"


def _connections_page(**params: str) -> str:
    base = f"{config.app_url.rstrip('/')}{config.connections_page_path}"
    return f"{base}?{urlencode(params)}"


class DisconnectRequest(BaseModel):
    platform: Optional[str] = None


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/auth/providers")
async def list_providers(
    manager: ConnectionManager = Depends(get_connection_manager),
) -> list[dict]:
    """
    List all platforms and whether they can be connected.
    No auth required — used by frontend to show available connections.
    """
    return manager.registry.list_providers()


@router.get("/auth/{platform}")
async def begin_connect(
    platform: str,
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
) -> RedirectResponse:
    """Redirect the browser to the platform's consent screen."""
    auth_url, state = manager.begin_connect(platform)

    response = RedirectResponse(auth_url, status_code=302)
    response.set_cookie(
        _state_cookie(platform),
        state,
        max_age=manager.state_signer.ttl_seconds,
        path="/",
        httponly=True,
        secure=config.is_production,
        samesite="lax",
    )
    return response


@router.get("/auth/{platform}/callback")
async def oauth_callback(
    platform: str,
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
) -> RedirectResponse:
    """
    OAuth callback — the platform redirects here after consent.

    Always answers with a redirect to the connections page carrying either
    ``success=true`` or ``error`` / ``message``, and always clears the state
    cookie.
    """
    try:
        await manager.handle_callback(
            user_id,
            platform,
            code=code,
            state=state,
            stored_state=request.cookies.get(_state_cookie(platform)),
            error=error,
            error_description=error_description,
        )
        target = _connections_page(success="true", platform=platform)
    except CallbackError as exc:
        target = _connections_page(error=exc.code, message=exc.message)

    response = RedirectResponse(target, status_code=302)
    response.delete_cookie(_state_cookie(platform), path="/")
    return response


@router.get("/connections")
async def list_connections(
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
) -> Dict[str, Any]:
    """List all active connections for the authenticated user."""
    connections = await manager.list_connections(user_id)
    return {"connections": [c.model_dump(mode="json") for c in connections]}


@router.post("/auth/disconnect")
async def disconnect(
    body: DisconnectRequest,
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Disconnect (soft delete) a platform connection."""
    if not body.platform:
        return JSONResponse({"error": "Platform is required"}, status_code=400)
    if Platform.parse(body.platform) is None:
        raise UnsupportedPlatform(body.platform)

    await manager.disconnect(user_id, body.platform)
    return {"success": True}


@router.delete("/connections/{platform}")
async def delete_connection(
    platform: str,
    user_id: str = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
) -> Dict[str, Any]:
    """Permanently remove a platform connection."""
    if Platform.parse(platform) is None:
        raise UnsupportedPlatform(platform)
    await manager.delete_connection(user_id, platform)
    return {"success": True, "platform": platform}
