"""Realtime notification routes."""

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import AuthenticationError, Unauthorized
from ...core.logging import get_logger
from ...database import get_db
from ..auth.dependencies import resolve_actor
from .coalescer import RecipientSession
from .hub import hub

logger = get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])

# Close codes mirroring HTTP 401 / 403
CLOSE_UNAUTHENTICATED = 4401
CLOSE_FORBIDDEN = 4403


async def _pump_alerts(websocket: WebSocket, session: RecipientSession) -> None:
    while True:
        alert = await session.next_alert()
        await websocket.send_json(alert.model_dump(mode="json"))


@router.websocket("/ws")
async def notifications_ws(
    websocket: WebSocket,
    db: Annotated[AsyncSession, Depends(get_db)],
    token: str | None = None,
):
    """Stream refresh-hint alerts for the signed-in helpdesk or contractor."""
    try:
        actor = await resolve_actor(db, token)
        await db.close()
        session = hub.open_session(actor)
    except AuthenticationError:
        await websocket.close(code=CLOSE_UNAUTHENTICATED)
        return
    except Unauthorized:
        await websocket.close(code=CLOSE_FORBIDDEN)
        return

    await websocket.accept()
    sender = asyncio.create_task(_pump_alerts(websocket, session))
    try:
        while True:
            data = await websocket.receive_text()
            if data.strip().lower() in {"ping", "keepalive"}:
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug(
            "Notification socket disconnected", extra={"recipient_id": str(actor.id)}
        )
    finally:
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
        hub.close_session(str(actor.id), session)
