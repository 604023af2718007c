from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum

from signaling.models.call import CallStatus, CallSide


class CallInitiate(BaseModel):
    callee: str = Field(..., min_length=1, description="Principal being called")
    offer: Optional[str] = Field(default=None, description="Opaque session-description offer")
    scheduled_session_id: Optional[str] = Field(default=None, description="Booked session this call belongs to")


class CallAnswer(BaseModel):
    answer: str = Field(..., description="Opaque session-description answer")


class CandidateCreate(BaseModel):
    candidate: str = Field(..., description="Opaque connectivity candidate")


class CandidateSide(str, Enum):
    caller = 'caller'
    callee = 'callee'
    # whichever side the viewer is not
    remote = 'remote'


class CallInitiated(BaseModel):
    call_id: int


class CallStatusResponse(BaseModel):
    call_id: int
    status: CallStatus


class CallView(BaseModel):
    id: int
    caller: str
    callee: str
    role: CallSide
    status: CallStatus
    offer: Optional[str] = None
    answer: Optional[str] = None
    caller_ice_candidates: List[str] = []
    callee_ice_candidates: List[str] = []
    remote_candidates: List[str] = []
    scheduled_session_id: Optional[str] = None
    created_at: Optional[datetime] = None
    answered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActiveCallPoll(BaseModel):
    call: Optional[CallView] = None
    # Set when the call the client last knew about has ended since
    ended_call_id: Optional[int] = None
    poll_interval_seconds: float


class CandidateList(BaseModel):
    call_id: int
    side: CallSide
    since: int = 0
    candidates: List[str]
