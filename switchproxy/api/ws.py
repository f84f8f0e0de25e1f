"""WebSocket endpoint for proxy state broadcasts."""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..models.proxy import ProxyState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def state_message(state: ProxyState) -> dict:
    return {"type": "proxy_state_changed", **state.model_dump(mode="json")}


class ConnectionManager:
    def __init__(self):
        self.active: list[WebSocket] = []

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.active.append(ws)

    def disconnect(self, ws: WebSocket):
        if ws in self.active:
            self.active.remove(ws)

    async def broadcast(self, message: dict):
        for ws in list(self.active):
            try:
                await ws.send_json(message)
            except Exception:
                self.disconnect(ws)

    async def broadcast_state(self, state: ProxyState):
        await self.broadcast(state_message(state))


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    connections: ConnectionManager = ws.app.state.connections
    proxy_manager = ws.app.state.proxy_manager
    await connections.connect(ws)
    await ws.send_json(state_message(proxy_manager.get_state()))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue

            if msg.get("action") == "get_state":
                await ws.send_json(state_message(proxy_manager.get_state()))

    except WebSocketDisconnect:
        connections.disconnect(ws)
    except Exception as e:
        logger.debug(f"WebSocket closed: {e}")
        connections.disconnect(ws)
