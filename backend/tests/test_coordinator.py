import pytest

from signaling.core.errors import (
    AlreadyAnswered,
    AlreadyInCall,
    CallNotFound,
    InvalidTransition,
    SelfCallNotAllowed,
    Unauthorized,
)
from signaling.models.call import CallSide, CallStatus


def test_initiate_creates_initiated_call(coordinator) -> None:
    call_id = coordinator.initiate("carol", "dave", "O1")

    call = coordinator.get_call("carol", call_id)
    assert call.status == CallStatus.initiated
    assert call.caller == "carol"
    assert call.callee == "dave"
    assert call.offer == "O1"
    assert call.answer is None
    assert coordinator.get_candidates("carol", call_id, CallSide.caller) == []
    assert coordinator.get_candidates("carol", call_id, CallSide.callee) == []


def test_call_ids_increase(coordinator) -> None:
    first = coordinator.initiate("a", "b", "o")
    coordinator.end("a", first)
    second = coordinator.initiate("a", "b", "o")
    assert second > first


def test_self_call_rejected(coordinator) -> None:
    with pytest.raises(SelfCallNotAllowed):
        coordinator.initiate("alice", "alice", "offer")
    assert coordinator.get_active_call("alice") is None


def test_second_initiate_by_same_caller_fails(coordinator) -> None:
    coordinator.initiate("a", "b", "o")
    with pytest.raises(AlreadyInCall):
        coordinator.initiate("a", "c", "o")


def test_initiate_to_busy_callee_fails(coordinator) -> None:
    coordinator.initiate("a", "b", "o")
    with pytest.raises(AlreadyInCall):
        coordinator.initiate("c", "b", "o")
    # The failed attempt must not leave "c" marked as busy
    assert coordinator.get_active_call("c") is None


def test_caller_cannot_answer(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    with pytest.raises(Unauthorized):
        coordinator.answer("a", call_id, "A1")


def test_outsider_cannot_touch_call(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    with pytest.raises(Unauthorized):
        coordinator.answer("mallory", call_id, "A1")
    with pytest.raises(Unauthorized):
        coordinator.add_candidate("mallory", call_id, "ice")
    with pytest.raises(Unauthorized):
        coordinator.end("mallory", call_id)
    with pytest.raises(Unauthorized):
        coordinator.get_call("mallory", call_id)


def test_second_answer_fails(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    coordinator.answer("b", call_id, "A1")
    with pytest.raises(AlreadyAnswered):
        coordinator.answer("b", call_id, "A2")
    assert coordinator.get_call("a", call_id).answer == "A1"


def test_already_answered_is_an_invalid_transition(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    coordinator.answer("b", call_id, "A1")
    with pytest.raises(InvalidTransition):
        coordinator.answer("b", call_id, "A2")


def test_unknown_call_is_not_found(coordinator) -> None:
    with pytest.raises(CallNotFound):
        coordinator.answer("b", 999, "A1")
    with pytest.raises(CallNotFound):
        coordinator.add_candidate("b", 999, "ice")
    with pytest.raises(CallNotFound):
        coordinator.end("b", 999)


def test_operations_after_end_are_not_found(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    coordinator.answer("b", call_id, "A1")
    coordinator.end("b", call_id)

    with pytest.raises(CallNotFound):
        coordinator.answer("b", call_id, "A2")
    with pytest.raises(CallNotFound):
        coordinator.add_candidate("a", call_id, "ice")
    with pytest.raises(CallNotFound):
        coordinator.end("a", call_id)
    assert coordinator.get_active_call("a") is None
    assert coordinator.get_active_call("b") is None


def test_unanswered_call_can_be_ended_by_callee(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    call = coordinator.end("b", call_id)
    assert call.status == CallStatus.ended
    assert call.ended_by == "b"


def test_ended_call_kept_in_history(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    coordinator.end("a", call_id)
    history = coordinator.get_call_history("b", call_id)
    assert history.status == CallStatus.ended
    assert history.offer == "o"


def test_participants_free_after_end(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    coordinator.end("a", call_id)
    new_id = coordinator.initiate("b", "a", "o2")
    assert coordinator.get_active_call("a").id == new_id


def test_full_negotiation_scenario(make_coordinator) -> None:
    carol = make_coordinator()
    dave = make_coordinator()

    call_id = carol.initiate("C", "D", "O1")

    seen = dave.get_active_call("D")
    assert seen.id == call_id
    assert seen.offer == "O1"
    dave.answer("D", call_id, "A1")

    seen = carol.get_active_call("C")
    assert seen.status == CallStatus.answered
    assert seen.answer == "A1"

    carol.add_candidate("C", call_id, "ice-c1")
    dave.add_candidate("D", call_id, "ice-d1")

    assert dave.get_candidates("D", call_id, CallSide.caller) == ["ice-c1"]
    assert carol.get_candidates("C", call_id, CallSide.callee) == ["ice-d1"]

    dave.end("D", call_id)
    assert carol.get_active_call("C") is None
    assert dave.get_active_call("D") is None


def test_scheduled_session_lookup(coordinator) -> None:
    call_id = coordinator.initiate("host", "guest", "o", scheduled_session_id="session-42")

    assert coordinator.get_active_call_for_session("guest", "session-42").id == call_id
    assert coordinator.get_active_call_for_session("host", "session-42").id == call_id
    assert coordinator.get_active_call_for_session("guest", "session-7") is None
    assert coordinator.get_active_call_for_session("stranger", "session-42") is None

    coordinator.end("host", call_id)
    assert coordinator.get_active_call_for_session("guest", "session-42") is None
