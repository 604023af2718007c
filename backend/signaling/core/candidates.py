"""Per-call, per-side ordered record of connectivity candidates."""
from datetime import datetime
from typing import List

from sqlalchemy import insert, literal, select
from sqlalchemy.orm import Session

from signaling.core.errors import CallEnded
from signaling.core.store import CallStore
from signaling.models.call import Call, CallSide, CallStatus, IceCandidate

_candidate_table = IceCandidate.__table__
_candidate_columns = _candidate_table.c


class CandidateQueue:
    """
    Append-only candidate lists keyed by (call id, submitting side).

    Candidates are never deduplicated: resubmitting an identical candidate is
    valid and is recorded again.
    """

    def __init__(self, db: Session, store: CallStore):
        self.db = db
        self.store = store

    def append(self, call_id: int, side: CallSide, candidate: str) -> None:
        # The status guard and the insert are one statement, so a candidate
        # can never land after `end` has committed.
        guarded_row = select(
            literal(call_id, type_=_candidate_columns.call_id.type),
            literal(side, type_=_candidate_columns.side.type),
            literal(candidate, type_=_candidate_columns.candidate.type),
            literal(datetime.utcnow(), type_=_candidate_columns.created_at.type),
        ).where(Call.id == call_id, Call.status != CallStatus.ended)

        result = self.db.execute(
            insert(_candidate_table).from_select(
                ["call_id", "side", "candidate", "created_at"], guarded_row
            )
        )
        if result.rowcount == 1:
            return

        # Nothing inserted: the call is either missing (get raises) or ended
        self.store.get(call_id)
        raise CallEnded(f"Call {call_id} has ended")

    def view(self, call_id: int, side: CallSide, since: int = 0) -> List[str]:
        """
        Snapshot of one side's candidates in arrival order.
        Not a consuming read: every call returns the full history from ``since`` on.
        """
        stmt = (
            select(IceCandidate.candidate)
            .where(IceCandidate.call_id == call_id, IceCandidate.side == side)
            .order_by(IceCandidate.id)
        )
        if since > 0:
            stmt = stmt.offset(since)
        return list(self.db.execute(stmt).scalars().all())
