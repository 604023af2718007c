"""
Facade over the call store, candidate queue and state machine.

Every operation takes the already-authenticated principal first and checks it
against the call's participants before touching state. Mutations of a single
call are serialized by a striped in-process lock and, across processes, by the
store's compare-and-set on status. Candidate appends lock per (call, side) so
the two sides never wait on each other.
"""
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.orm import Session

from signaling.core.candidates import CandidateQueue
from signaling.core.config import settings
from signaling.core.errors import CallEnded, Unauthorized
from signaling.core.locks import StripedLocks, run_with_contention_retry
from signaling.core.state_machine import CallStateMachine
from signaling.core.store import CallStore
from signaling.models.call import Call, CallSide, CallStatus
from signaling.utils.logger import describe_payload, get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Shared by every coordinator in the process
call_locks = StripedLocks(stripes=settings.LOCK_STRIPES, timeout=settings.LOCK_TIMEOUT_SECONDS)
candidate_locks = StripedLocks(stripes=settings.LOCK_STRIPES, timeout=settings.LOCK_TIMEOUT_SECONDS)


class SignalingCoordinator:
    def __init__(
        self,
        db: Session,
        locks: StripedLocks = None,
        side_locks: StripedLocks = None,
        retry_attempts: int = None,
        retry_delay: float = None,
    ):
        self.db = db
        self.store = CallStore(db)
        self.candidates = CandidateQueue(db, self.store)
        self.machine = CallStateMachine(self.store)
        self._call_locks = locks or call_locks
        self._side_locks = side_locks or candidate_locks
        self._retry_attempts = retry_attempts or settings.CONTENTION_RETRY_ATTEMPTS
        self._retry_delay = settings.CONTENTION_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def initiate(
        self,
        principal: str,
        callee: str,
        offer: Optional[str],
        scheduled_session_id: Optional[str] = None,
    ) -> int:
        """Create a call from ``principal`` to ``callee`` and return its id."""
        call = self._mutate(
            None,
            "initiate",
            lambda: self.machine.initiate(principal, callee, offer, scheduled_session_id),
        )
        return call.id

    def answer(self, principal: str, call_id: int, answer: str) -> Call:
        def work():
            call = self._live_call(call_id)
            return self.machine.answer(call, principal, answer)

        return self._mutate(("call", call_id), f"answer call {call_id}", work)

    def add_candidate(self, principal: str, call_id: int, candidate: str) -> Call:
        """Append ``candidate`` to the list of the side ``principal`` plays in the call."""
        call = self._live_call(call_id)
        side = self._require_side(call, principal)

        def work():
            self.candidates.append(call_id, side, candidate)
            return call

        result = self._mutate(
            ("candidates", call_id, side.value),
            f"add candidate to call {call_id}",
            work,
            locks=self._side_locks,
        )
        logger.debug(
            "Call %s: %s candidate %s recorded", call_id, side.value, describe_payload(candidate)
        )
        return result

    def end(self, principal: str, call_id: int, unanswered_only: bool = False) -> Call:
        """End the call. With ``unanswered_only`` an answered call is left alone (InvalidTransition)."""
        def work():
            call = self._live_call(call_id)
            return self.machine.end(call, principal, unanswered_only)

        return self._mutate(("call", call_id), f"end call {call_id}", work)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_active_call(self, principal: str) -> Optional[Call]:
        """The caller's single non-ended call, or None. Absence is not an error."""
        return self.store.find_active_for(principal)

    def get_active_call_for_session(self, principal: str, scheduled_session_id: str) -> Optional[Call]:
        return self.store.find_active_for_session(principal, scheduled_session_id)

    def get_call(self, principal: str, call_id: int) -> Call:
        call = self._live_call(call_id)
        self._require_side(call, principal)
        return call

    def get_call_history(self, principal: str, call_id: int) -> Call:
        """Any call the principal took part in, ended ones included."""
        call = self.store.get(call_id)
        self._require_side(call, principal)
        return call

    def get_candidates(self, principal: str, call_id: int, side: CallSide, since: int = 0) -> List[str]:
        call = self._live_call(call_id)
        self._require_side(call, principal)
        return self.candidates.view(call_id, side, since)

    def candidate_lists(self, call: Call):
        """Both sides' full candidate lists as (caller, callee)."""
        return (
            self.candidates.view(call.id, CallSide.caller),
            self.candidates.view(call.id, CallSide.callee),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _live_call(self, call_id: int) -> Call:
        call = self.store.get(call_id)
        if call.status == CallStatus.ended:
            # Ended calls leave the active namespace even though the row is kept
            raise CallEnded(f"Call {call_id} not found")
        return call

    @staticmethod
    def _require_side(call: Call, principal: str) -> CallSide:
        side = call.side_of(principal)
        if side is None:
            raise Unauthorized()
        return side

    def _mutate(
        self,
        lock_key,
        label: str,
        work: Callable[[], T],
        locks: StripedLocks = None,
    ) -> T:
        locks = locks or self._call_locks

        def attempt() -> T:
            if lock_key is None:
                return self._commit(work)
            with locks.hold(lock_key):
                return self._commit(work)

        return run_with_contention_retry(
            attempt,
            attempts=self._retry_attempts,
            delay=self._retry_delay,
            label=label,
        )

    def _commit(self, work: Callable[[], T]) -> T:
        try:
            result = work()
            self.db.commit()
            return result
        except Exception:
            self.db.rollback()
            raise

