"""Legal call transitions: initiated -> answered -> ended, with role checks."""
from datetime import datetime
from typing import Optional

from signaling.core.errors import (
    AlreadyAnswered,
    AlreadyInCall,
    CallEnded,
    InvalidTransition,
    SelfCallNotAllowed,
    Unauthorized,
)
from signaling.core.store import CallStore
from signaling.models.call import Call, CallStatus
from signaling.utils.logger import describe_payload, get_logger

logger = get_logger(__name__)

# status -> statuses reachable from it
TRANSITIONS = {
    CallStatus.initiated: {CallStatus.answered, CallStatus.ended},
    CallStatus.answered: {CallStatus.ended},
    CallStatus.ended: set(),
}


def can_transition(current: CallStatus, target: CallStatus) -> bool:
    return target in TRANSITIONS[current]


class CallStateMachine:
    def __init__(self, store: CallStore):
        self.store = store

    def initiate(
        self,
        caller: str,
        callee: str,
        offer: Optional[str],
        scheduled_session_id: Optional[str] = None,
    ) -> Call:
        if caller == callee:
            raise SelfCallNotAllowed()

        for principal in (caller, callee):
            if self.store.find_active_for(principal) is not None:
                raise AlreadyInCall(f"{principal} already has an active call")

        call = self.store.put(
            Call(
                caller=caller,
                callee=callee,
                status=CallStatus.initiated,
                offer=offer,
                scheduled_session_id=scheduled_session_id,
                created_at=datetime.utcnow(),
            )
        )
        # Racing initiates that both passed the check above are settled here
        self.store.claim_participants(call, (caller, callee))
        logger.info(
            "Call %s initiated by %s for %s (offer %s)",
            call.id, caller, callee, describe_payload(offer),
        )
        return call

    def answer(self, call: Call, actor: str, answer: str) -> Call:
        if call.status == CallStatus.ended:
            raise CallEnded(f"Call {call.id} has ended")
        if actor != call.callee:
            raise Unauthorized("Only the callee can answer a call")
        if call.status == CallStatus.answered or call.answer is not None:
            raise AlreadyAnswered()
        if not can_transition(call.status, CallStatus.answered):
            raise InvalidTransition()

        swapped = self.store.compare_and_set_status(
            call.id,
            expected=(CallStatus.initiated,),
            new_status=CallStatus.answered,
            require_unanswered=True,
            answer=answer,
            answered_at=datetime.utcnow(),
        )
        if not swapped:
            # Lost a race; report what the winner left behind
            current = self.store.get(call.id)
            if current.status == CallStatus.ended:
                raise CallEnded(f"Call {call.id} has ended")
            raise AlreadyAnswered()

        logger.info("Call %s answered by %s (answer %s)", call.id, actor, describe_payload(answer))
        return self.store.get(call.id)

    def end(self, call: Call, actor: str, unanswered_only: bool = False) -> Call:
        if call.status == CallStatus.ended:
            raise CallEnded(f"Call {call.id} has already ended")
        if call.side_of(actor) is None:
            raise Unauthorized()

        expected = (CallStatus.initiated,) if unanswered_only else (CallStatus.initiated, CallStatus.answered)
        swapped = self.store.compare_and_set_status(
            call.id,
            expected=expected,
            new_status=CallStatus.ended,
            ended_at=datetime.utcnow(),
            ended_by=actor,
        )
        if not swapped:
            if self.store.get(call.id).status == CallStatus.answered:
                raise InvalidTransition(f"Call {call.id} was answered")
            raise CallEnded(f"Call {call.id} has already ended")

        self.store.release_participants(call.id)
        logger.info("Call %s ended by %s", call.id, actor)
        return self.store.get(call.id)
