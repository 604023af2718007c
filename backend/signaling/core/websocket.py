import json
from typing import Dict, Set, Optional
from fastapi import WebSocket, WebSocketDisconnect

from signaling.models.call import CallStatus
from signaling.utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """
    Optional push channel for call changes.
    Messages are hints that tell a client to poll now; the poll result stays authoritative.
    """

    def __init__(self):
        # Store active connections: {principal: set of websockets}
        self.active_connections: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, principal: str):
        """Connect a principal's websocket"""
        await websocket.accept()

        if principal not in self.active_connections:
            self.active_connections[principal] = set()
        self.active_connections[principal].add(websocket)

        logger.info("Principal %s connected", principal)

    def disconnect(self, websocket: WebSocket, principal: str):
        """Disconnect a principal's websocket"""
        if principal in self.active_connections:
            self.active_connections[principal].discard(websocket)
            if not self.active_connections[principal]:
                del self.active_connections[principal]

        logger.info("Principal %s disconnected", principal)

    def is_connected(self, principal: str) -> bool:
        return principal in self.active_connections

    async def send_personal_message(self, message: str, principal: str):
        """Send a message to every connection of a principal"""
        if principal in self.active_connections:
            disconnected = set()
            for websocket in list(self.active_connections[principal]):
                try:
                    await websocket.send_text(message)
                except (WebSocketDisconnect, RuntimeError):
                    disconnected.add(websocket)

            # Remove disconnected websockets
            if disconnected:
                self.active_connections[principal] -= disconnected
                if not self.active_connections[principal]:
                    del self.active_connections[principal]

    async def notify_call_update(
        self,
        call_id: int,
        status: CallStatus,
        recipients,
        event: str = "call_update",
        exclude: Optional[str] = None,
    ):
        """Tell the participants of a call that it changed"""
        message = json.dumps({
            "type": event,
            "call_id": call_id,
            "status": status.value,
        })
        for principal in recipients:
            if principal == exclude:
                continue
            await self.send_personal_message(message, principal)

# Global connection manager instance
manager = ConnectionManager()
