"""Operator dashboard socket: pushes new_message / mode_change, answers request_suggestions."""

import re

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from app.dependencies import websocket_token_ok
from app.logging_config import get_logger
from app.schemas.base import PHONE_PATTERN
from app.services.broadcast import SUGGESTIONS_UPDATE

logger = get_logger("realtime")

router = APIRouter()

REQUEST_SUGGESTIONS = "request_suggestions"
_PHONE_RE = re.compile(PHONE_PATTERN)


@router.websocket("/ws")
async def operator_socket(websocket: WebSocket, authorized: bool = Depends(websocket_token_ok)):
    if not authorized:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    container = websocket.app.state.container
    broadcaster = container.broadcaster
    await broadcaster.connect(websocket)
    try:
        while True:
            frame = await websocket.receive_json()
            if not isinstance(frame, dict) or frame.get("event") != REQUEST_SUGGESTIONS:
                continue

            data = frame.get("data") or {}
            if not isinstance(data, dict):
                continue

            phone_number = str(data.get("phoneNumber") or "")
            if not _PHONE_RE.match(phone_number):
                logger.debug(f"Ignoring request_suggestions with invalid phone: {phone_number!r}")
                continue

            suggestions = await container.copilot.generate_suggestions(phone_number, str(data.get("message") or ""))
            await broadcaster.send_to(
                websocket,
                SUGGESTIONS_UPDATE,
                {"phoneNumber": phone_number, "suggestions": suggestions},
            )
    except WebSocketDisconnect:
        logger.debug("Operator socket disconnected")
    except ValueError as e:
        logger.warning(f"Operator socket sent invalid JSON: {e}")
    finally:
        broadcaster.disconnect(websocket)
