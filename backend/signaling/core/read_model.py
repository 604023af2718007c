"""
Read-optimized projection for clients that synchronize by polling.

Each poll reads committed state straight from the store, and stored status
only ever moves forward, so a client can never observe an earlier status for a
call after a later one. A client that starts polling late still gets the
answer and every candidate emitted so far.
"""
from typing import Optional

from signaling.core.config import settings
from signaling.core.coordinator import SignalingCoordinator
from signaling.core.errors import CallNotFound, Unauthorized
from signaling.models.call import Call, CallSide, CallStatus
from signaling.schemas.call import ActiveCallPoll, CallView


class PollingReadModel:
    def __init__(self, coordinator: SignalingCoordinator, poll_interval: float = None):
        self.coordinator = coordinator
        self.poll_interval = poll_interval or settings.POLL_INTERVAL_SECONDS

    def view(self, call: Call, viewer: str) -> CallView:
        role = call.side_of(viewer)
        caller_candidates, callee_candidates = self.coordinator.candidate_lists(call)
        remote = callee_candidates if role is CallSide.caller else caller_candidates
        return CallView(
            id=call.id,
            caller=call.caller,
            callee=call.callee,
            role=role,
            status=call.status,
            offer=call.offer,
            answer=call.answer,
            caller_ice_candidates=caller_candidates,
            callee_ice_candidates=callee_candidates,
            remote_candidates=remote,
            scheduled_session_id=call.scheduled_session_id,
            created_at=call.created_at,
            answered_at=call.answered_at,
        )

    def active_call(self, principal: str) -> Optional[CallView]:
        call = self.coordinator.get_active_call(principal)
        if call is None:
            return None
        return self.view(call, principal)

    def poll(self, principal: str, known_call_id: Optional[int] = None) -> ActiveCallPoll:
        """
        One poll tick. ``known_call_id`` is the call the client saw last time;
        if it has ended since, the response says so explicitly.
        """
        current = self.active_call(principal)
        ended_call_id = None
        if known_call_id is not None and (current is None or current.id != known_call_id):
            ended_call_id = self._ended_id(principal, known_call_id)
        return ActiveCallPoll(
            call=current,
            ended_call_id=ended_call_id,
            poll_interval_seconds=self.poll_interval,
        )

    def session_call(self, principal: str, scheduled_session_id: str) -> Optional[CallView]:
        call = self.coordinator.get_active_call_for_session(principal, scheduled_session_id)
        if call is None:
            return None
        return self.view(call, principal)

    def _ended_id(self, principal: str, call_id: int) -> Optional[int]:
        try:
            call = self.coordinator.get_call_history(principal, call_id)
        except (CallNotFound, Unauthorized):
            # Unknown or foreign ids tell the client nothing
            return None
        return call.id if call.status == CallStatus.ended else None
