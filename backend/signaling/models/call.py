from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from signaling.db.session import Base
from datetime import datetime
from enum import Enum


class CallStatus(str, Enum):
    initiated = 'initiated'
    answered = 'answered'
    ended = 'ended'


class CallSide(str, Enum):
    caller = 'caller'
    callee = 'callee'

    @property
    def other(self) -> "CallSide":
        return CallSide.callee if self is CallSide.caller else CallSide.caller


class Call(Base):
    __tablename__ = "calls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    caller = Column(String, nullable=False, index=True)
    callee = Column(String, nullable=False, index=True)
    status = Column(SAEnum(CallStatus, name="call_status"), nullable=False, default=CallStatus.initiated)
    offer = Column(Text, nullable=True)
    answer = Column(Text, nullable=True)
    # Opaque reference to an externally booked session, if the call belongs to one
    scheduled_session_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    answered_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    ended_by = Column(String, nullable=True)

    def side_of(self, principal: str):
        """Return the side a principal plays in this call, or None for outsiders."""
        if principal == self.caller:
            return CallSide.caller
        if principal == self.callee:
            return CallSide.callee
        return None

    def __repr__(self) -> str:
        return f"<Call id={self.id} caller={self.caller} callee={self.callee} status={self.status}>"


class IceCandidate(Base):
    __tablename__ = "ice_candidates"

    # Autoincrement id is the arrival order within a side
    id = Column(Integer, primary_key=True, autoincrement=True)
    call_id = Column(Integer, ForeignKey("calls.id", ondelete="CASCADE"), nullable=False)
    side = Column(SAEnum(CallSide, name="call_side"), nullable=False)
    candidate = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_ice_candidates_call_side", "call_id", "side", "id"),
    )


class ActiveCallParticipant(Base):
    """Index principal -> active call. The primary key makes a second active call impossible."""
    __tablename__ = "active_call_participants"

    principal = Column(String, primary_key=True)
    call_id = Column(Integer, ForeignKey("calls.id", ondelete="CASCADE"), nullable=False, index=True)
