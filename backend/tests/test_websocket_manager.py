import asyncio
import json

from signaling.core.websocket import ConnectionManager
from signaling.models.call import CallStatus


class FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, message: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(message))


def test_notify_skips_the_actor() -> None:
    manager = ConnectionManager()
    caller_ws, callee_ws = FakeWebSocket(), FakeWebSocket()

    async def scenario():
        await manager.connect(caller_ws, "C")
        await manager.connect(callee_ws, "D")
        await manager.notify_call_update(7, CallStatus.answered, recipients=["C", "D"], exclude="D")

    asyncio.run(scenario())

    assert caller_ws.accepted and callee_ws.accepted
    assert caller_ws.sent == [{"type": "call_update", "call_id": 7, "status": "answered"}]
    assert callee_ws.sent == []


def test_dead_sockets_are_dropped() -> None:
    manager = ConnectionManager()
    dead = FakeWebSocket(fail=True)

    async def scenario():
        await manager.connect(dead, "C")
        await manager.notify_call_update(7, CallStatus.ended, recipients=["C"])

    asyncio.run(scenario())
    assert not manager.is_connected("C")


def test_disconnect_forgets_principal() -> None:
    manager = ConnectionManager()
    ws = FakeWebSocket()
    asyncio.run(manager.connect(ws, "C"))
    manager.disconnect(ws, "C")
    assert not manager.is_connected("C")
