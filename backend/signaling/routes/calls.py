from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from signaling.db.session import get_db
from signaling.core.auth import get_current_principal
from signaling.core.coordinator import SignalingCoordinator
from signaling.core.read_model import PollingReadModel
from signaling.core.websocket import manager
from signaling.models.call import CallSide, CallStatus
from signaling.schemas.call import (
    ActiveCallPoll,
    CallAnswer,
    CallInitiate,
    CallInitiated,
    CallStatusResponse,
    CallView,
    CandidateCreate,
    CandidateList,
    CandidateSide,
)

router = APIRouter()

# Handlers are plain `def`: coordinator work blocks on call locks and the database,
# so it runs in the threadpool and never stalls polls on the event loop.


def get_coordinator(db: Session = Depends(get_db)) -> SignalingCoordinator:
    return SignalingCoordinator(db)


def get_read_model(coordinator: SignalingCoordinator = Depends(get_coordinator)) -> PollingReadModel:
    return PollingReadModel(coordinator)


@router.post("", response_model=CallInitiated, status_code=status.HTTP_201_CREATED)
def initiate_call(
    request: CallInitiate,
    background_tasks: BackgroundTasks,
    principal: str = Depends(get_current_principal),
    coordinator: SignalingCoordinator = Depends(get_coordinator)
):
    """
    Start a call to `callee` carrying the caller's offer.
    Fails if either side already has an active call.
    """
    call_id = coordinator.initiate(
        principal,
        request.callee,
        request.offer,
        scheduled_session_id=request.scheduled_session_id,
    )

    # Push is best effort and sent after the response, the callee discovers the call by polling anyway
    background_tasks.add_task(
        manager.notify_call_update, call_id, CallStatus.initiated, recipients=[request.callee], event="incoming_call"
    )

    return CallInitiated(call_id=call_id)


@router.get("/active", response_model=ActiveCallPoll)
def poll_active_call(
    known_call_id: Optional[int] = Query(default=None, description="Call id seen on the previous poll"),
    principal: str = Depends(get_current_principal),
    read_model: PollingReadModel = Depends(get_read_model)
):
    """
    The current principal's active call, if any.
    Safe to poll continuously; "no active call" is a normal empty result.
    """
    return read_model.poll(principal, known_call_id=known_call_id)


@router.get("/sessions/{scheduled_session_id}/active", response_model=Optional[CallView])
def get_session_call(
    scheduled_session_id: str,
    principal: str = Depends(get_current_principal),
    read_model: PollingReadModel = Depends(get_read_model)
):
    """Active call that belongs to a booked session, for joining without guessing its id"""
    return read_model.session_call(principal, scheduled_session_id)


@router.get("/{call_id}", response_model=CallView)
def get_call(
    call_id: int,
    principal: str = Depends(get_current_principal),
    read_model: PollingReadModel = Depends(get_read_model)
):
    call = read_model.coordinator.get_call(principal, call_id)
    return read_model.view(call, principal)


@router.post("/{call_id}/answer", response_model=CallStatusResponse)
def answer_call(
    call_id: int,
    request: CallAnswer,
    background_tasks: BackgroundTasks,
    principal: str = Depends(get_current_principal),
    coordinator: SignalingCoordinator = Depends(get_coordinator)
):
    call = coordinator.answer(principal, call_id, request.answer)
    background_tasks.add_task(
        manager.notify_call_update, call.id, call.status, recipients=[call.caller, call.callee], exclude=principal
    )
    return CallStatusResponse(call_id=call.id, status=call.status)


@router.post("/{call_id}/candidates", status_code=status.HTTP_204_NO_CONTENT)
def add_candidate(
    call_id: int,
    request: CandidateCreate,
    background_tasks: BackgroundTasks,
    principal: str = Depends(get_current_principal),
    coordinator: SignalingCoordinator = Depends(get_coordinator)
):
    call = coordinator.add_candidate(principal, call_id, request.candidate)
    background_tasks.add_task(
        manager.notify_call_update,
        call.id,
        call.status,
        recipients=[call.caller, call.callee],
        event="candidate_added",
        exclude=principal,
    )


@router.get("/{call_id}/candidates", response_model=CandidateList)
def get_candidates(
    call_id: int,
    side: CandidateSide = Query(default=CandidateSide.remote),
    since: int = Query(default=0, ge=0, description="Number of candidates the client already applied"),
    principal: str = Depends(get_current_principal),
    coordinator: SignalingCoordinator = Depends(get_coordinator)
):
    """
    Full candidate history of one side, oldest first.
    Reading does not consume: the same list comes back on every poll.
    """
    call = coordinator.get_call(principal, call_id)
    if side == CandidateSide.remote:
        resolved = call.side_of(principal).other
    else:
        resolved = CallSide(side.value)

    candidates = coordinator.get_candidates(principal, call_id, resolved, since=since)
    return CandidateList(call_id=call_id, side=resolved, since=since, candidates=candidates)


@router.post("/{call_id}/end", response_model=CallStatusResponse)
def end_call(
    call_id: int,
    background_tasks: BackgroundTasks,
    principal: str = Depends(get_current_principal),
    coordinator: SignalingCoordinator = Depends(get_coordinator)
):
    """End the call. Ending a call that already ended is reported as not found."""
    call = coordinator.end(principal, call_id)
    background_tasks.add_task(
        manager.notify_call_update, call.id, call.status, recipients=[call.caller, call.callee], exclude=principal
    )
    return CallStatusResponse(call_id=call.id, status=call.status)
