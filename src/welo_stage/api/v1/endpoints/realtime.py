"""WebSocket gateway for real-time messaging.

Clients connect to ``/ws?token=<jwt>``. The token is verified here, which
makes this endpoint the trust boundary: the delivery engine accepts the user
id it is given. Each socket is served by its own task and its frames are
handled one at a time, so events from one client keep their order.

Frames from the client (UTF-8 JSON in text or binary frames, ``type``
discriminator):
    - send-message: ``{"chat_id", "text", "sender_id"?}``
    - mark-read: ``{"message_id", "chat_id"}``
    - user-online / user-offline: re-declare or hide this connection

Frames to the client: presence-changed, new-message, message-sent,
message-read and message-error.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from welo_stage.core.security import InvalidTokenError, verify_access_token
from welo_stage.schemas.events import (
    MarkReadEvent,
    MessageError,
    OutboundEvent,
    SendMessageEvent,
    UserOfflineEvent,
    UserOnlineEvent,
    inbound_event_adapter,
)
from welo_stage.services.delivery import DeliveryEngine
from welo_stage.services.errors import (
    AccessDeniedError,
    ChatServiceError,
    InvalidInputError,
    StorageFailureError,
)
from welo_stage.services.presence import deliver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

# Application-defined close codes
WS_CLOSE_UNAUTHENTICATED = 4001


class WebSocketConnection:
    """Connection handle that frames outbound events as JSON text."""

    def __init__(self, websocket: WebSocket, user_id: int) -> None:
        self.websocket = websocket
        self.user_id = user_id
        self._send_lock = asyncio.Lock()

    async def send_event(self, event: OutboundEvent) -> None:
        """Serialize and send one event; concurrent senders are serialised."""
        async with self._send_lock:
            await self.websocket.send_json(event.model_dump(mode="json"))

    def __repr__(self) -> str:
        return f"WebSocketConnection(user_id={self.user_id})"


async def _handle_frame(
    engine: DeliveryEngine,
    connection: WebSocketConnection,
    frame: str | bytes,
) -> None:
    """Decode one client frame and run it through the engine."""
    event = inbound_event_adapter.validate_json(frame)

    if isinstance(event, SendMessageEvent):
        if event.sender_id is not None and event.sender_id != connection.user_id:
            raise AccessDeniedError("sender_id does not match the authenticated user")
        await engine.send(event.chat_id, connection.user_id, event.text, origin=connection)
    elif isinstance(event, MarkReadEvent):
        await engine.mark_read(event.message_id, event.chat_id, connection.user_id)
    elif isinstance(event, UserOnlineEvent):
        await engine.connect(connection.user_id, connection)
    elif isinstance(event, UserOfflineEvent):
        await engine.go_offline(connection.user_id)


async def _report_error(connection: WebSocketConnection, reason: str, code: str) -> None:
    await deliver(connection, MessageError(reason=reason, code=code))


@router.websocket("/ws")
async def realtime_gateway(websocket: WebSocket) -> None:
    """Serve one authenticated client connection until it closes."""
    token = websocket.query_params.get("token")
    try:
        user_id = verify_access_token(token or "")
    except InvalidTokenError:
        logger.warning("Rejected WebSocket connection with missing or invalid token")
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED)
        return

    engine: DeliveryEngine = websocket.app.state.delivery
    await websocket.accept()
    connection = WebSocketConnection(websocket, user_id)
    await engine.connect(user_id, connection)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            # Binary frames carry the same UTF-8 JSON as text frames.
            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes") or b""
            try:
                await _handle_frame(engine, connection, frame)
            except ValidationError as err:
                await _report_error(
                    connection,
                    f"Malformed event: {err.error_count()} error(s)",
                    InvalidInputError.code,
                )
            except StorageFailureError:
                await _report_error(
                    connection, "Failed to process request", StorageFailureError.code
                )
            except ChatServiceError as err:
                await _report_error(connection, err.detail, err.code)
    except WebSocketDisconnect:
        pass
    finally:
        await engine.disconnect(connection)
