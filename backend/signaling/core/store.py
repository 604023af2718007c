"""Durable storage of Call records on top of a SQLAlchemy session."""
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from signaling.core.errors import AlreadyInCall, CallNotFound
from signaling.models.call import ActiveCallParticipant, Call, CallStatus


class CallStore:
    """
    Single source of truth for calls.

    Reads always repopulate from the database so that a long-lived session
    never serves a status older than what is committed.
    """

    def __init__(self, db: Session):
        self.db = db

    def put(self, call: Call) -> Call:
        self.db.add(call)
        self.db.flush()
        return call

    def get(self, call_id: int) -> Call:
        """Return the call with this id, including ended ones kept for audit."""
        call = self.db.get(Call, call_id, populate_existing=True)
        if call is None:
            raise CallNotFound(f"Call {call_id} not found")
        return call

    def find_active_for(self, principal: str) -> Optional[Call]:
        stmt = (
            select(Call)
            .join(ActiveCallParticipant, ActiveCallParticipant.call_id == Call.id)
            .where(
                ActiveCallParticipant.principal == principal,
                Call.status != CallStatus.ended,
            )
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalars().first()

    def find_active_for_session(self, principal: str, scheduled_session_id: str) -> Optional[Call]:
        call = self.find_active_for(principal)
        if call is None or call.scheduled_session_id != scheduled_session_id:
            return None
        return call

    def find_stale(self, created_before: datetime) -> List[Call]:
        """Calls still waiting for an answer that were created before the cutoff."""
        stmt = (
            select(Call)
            .where(Call.status == CallStatus.initiated, Call.created_at < created_before)
            .order_by(Call.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def claim_participants(self, call: Call, principals: Iterable[str]) -> None:
        """
        Register ``call`` as the active call of every principal.
        The principal primary key rejects a concurrent second claim.
        """
        for principal in principals:
            self.db.add(ActiveCallParticipant(principal=principal, call_id=call.id))
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise AlreadyInCall() from exc

    def release_participants(self, call_id: int) -> None:
        self.db.execute(
            delete(ActiveCallParticipant).where(ActiveCallParticipant.call_id == call_id)
        )

    def compare_and_set_status(
        self,
        call_id: int,
        expected: Sequence[CallStatus],
        new_status: CallStatus,
        require_unanswered: bool = False,
        **values,
    ) -> bool:
        """
        Atomically move a call to ``new_status`` if its stored status is one of ``expected``.
        Returns False when another writer got there first.
        """
        stmt = (
            update(Call)
            .where(Call.id == call_id, Call.status.in_(list(expected)))
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if require_unanswered:
            stmt = stmt.where(Call.answer.is_(None))
        result = self.db.execute(stmt)
        return result.rowcount == 1
