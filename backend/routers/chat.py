"""
Chalkboard Chat Router - WebSocket Handler

Each connection to /ws/chat/{channel_id} is a chat channel with one
tutoring agent attached. Client frames:

    {"type": "message.new", "message": {"text": ..., "ai_generated": false, "writingTask": ...}}
    {"type": "ai_indicator.stop", "message_id": ...}

Everything the agent produces comes back as channel frames (see
transport/websocket.py). Protocol problems are reported as
{"type": "error", "content": ...} without closing the connection.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from agents import INDICATOR_STOP_EVENT, SessionOrchestrator
from errors import AgentError
from services.agent_registry import get_agent_registry
from transport import MESSAGE_NEW_EVENT, InboundMessage, StopRequest, WebSocketChannel

logger = logging.getLogger(__name__)

router = APIRouter()


def _create_agent(channel: WebSocketChannel) -> SessionOrchestrator:
    """Build the agent for a new connection."""
    return SessionOrchestrator(channel)


async def _send_error(websocket: WebSocket, content: str) -> None:
    try:
        await websocket.send_json({"type": "error", "content": content})
    except Exception as send_err:
        logger.error(f"Failed to send error to WebSocket: {send_err}")


async def _dispatch(agent: SessionOrchestrator, websocket: WebSocket, data) -> None:
    frame_type = data.get("type") if isinstance(data, dict) else None

    if frame_type == MESSAGE_NEW_EVENT:
        event = InboundMessage.model_validate(data.get("message") or {})
        await agent.handle_message(event)
    elif frame_type == INDICATOR_STOP_EVENT:
        await agent.handle_stop(StopRequest.model_validate(data))
    else:
        await _send_error(websocket, f"Unsupported frame type: {frame_type}")


@router.websocket("/ws/chat/{channel_id}")
async def chat_websocket(websocket: WebSocket, channel_id: str):
    """WebSocket endpoint for one tutoring channel."""
    await websocket.accept()

    channel = WebSocketChannel(websocket, channel_id)
    agent = _create_agent(channel)

    try:
        await agent.initialize()
    except AgentError as e:
        logger.error(f"Agent initialization failed for {channel.cid}: {e}")
        await _send_error(websocket, e.message)
        await websocket.close(code=1011, reason="Agent initialization failed")
        return

    registry = get_agent_registry()
    replaced = registry.register(agent)
    if replaced is not None:
        await replaced.dispose()

    logger.info(f"Chat connected: {channel.cid}")
    await websocket.send_json({"type": "ready", "cid": channel.cid})

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await _send_error(websocket, "Frames must be JSON objects")
                continue

            try:
                await _dispatch(agent, websocket, data)
            except ValidationError as e:
                await _send_error(websocket, f"Invalid frame: {e.errors()[0].get('msg', 'validation error')}")
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error(f"Chat error on {channel.cid}: {e}", exc_info=True)
                await _send_error(websocket, f"Hit a snag: {e}")
    except (WebSocketDisconnect, RuntimeError):
        logger.info(f"Chat disconnected: {channel.cid}")
    finally:
        registry.unregister(channel.cid, agent)
        await agent.dispose()
