from signaling.core.read_model import PollingReadModel
from signaling.models.call import CallSide, CallStatus


def test_poll_without_call_is_empty(coordinator) -> None:
    poll = PollingReadModel(coordinator, poll_interval=2).poll("nobody")
    assert poll.call is None
    assert poll.ended_call_id is None
    assert poll.poll_interval_seconds == 2


def test_late_poller_sees_answer_and_full_history(make_coordinator) -> None:
    writer = make_coordinator()
    call_id = writer.initiate("a", "b", "offer")
    writer.add_candidate("a", call_id, "c1")
    writer.answer("b", call_id, "answer")
    writer.add_candidate("b", call_id, "d1")
    writer.add_candidate("a", call_id, "c2")

    # A client that attaches only now
    view = PollingReadModel(make_coordinator()).poll("b").call
    assert view.id == call_id
    assert view.status == CallStatus.answered
    assert view.role == CallSide.callee
    assert view.offer == "offer"
    assert view.answer == "answer"
    assert view.caller_ice_candidates == ["c1", "c2"]
    assert view.callee_ice_candidates == ["d1"]
    assert view.remote_candidates == ["c1", "c2"]


def test_remote_candidates_follow_viewer_role(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    coordinator.add_candidate("a", call_id, "c1")
    coordinator.add_candidate("b", call_id, "d1")

    read_model = PollingReadModel(coordinator)
    assert read_model.active_call("a").remote_candidates == ["d1"]
    assert read_model.active_call("b").remote_candidates == ["c1"]


def test_poll_after_end_returns_none_and_reports_ended_call(make_coordinator) -> None:
    writer = make_coordinator()
    read_model = PollingReadModel(make_coordinator())

    call_id = writer.initiate("a", "b", "o")
    assert read_model.poll("b").call.id == call_id

    writer.end("a", call_id)

    poll = read_model.poll("b", known_call_id=call_id)
    assert poll.call is None
    assert poll.ended_call_id == call_id


def test_known_call_id_of_someone_else_is_ignored(coordinator) -> None:
    call_id = coordinator.initiate("a", "b", "o")
    coordinator.end("a", call_id)

    read_model = PollingReadModel(coordinator)
    assert read_model.poll("mallory", known_call_id=call_id).ended_call_id is None
    assert read_model.poll("b", known_call_id=999).ended_call_id is None


def test_status_never_goes_backwards_across_polls(make_coordinator) -> None:
    writer = make_coordinator()
    read_model = PollingReadModel(make_coordinator())
    order = [CallStatus.initiated, CallStatus.answered, CallStatus.ended]

    call_id = writer.initiate("a", "b", "o")
    observed = [read_model.poll("a", known_call_id=call_id)]
    writer.answer("b", call_id, "A")
    observed.append(read_model.poll("a", known_call_id=call_id))
    observed.append(read_model.poll("a", known_call_id=call_id))
    writer.end("b", call_id)
    observed.append(read_model.poll("a", known_call_id=call_id))

    statuses = [
        poll.call.status if poll.call is not None else CallStatus.ended
        for poll in observed
    ]
    ranks = [order.index(status) for status in statuses]
    assert ranks == sorted(ranks)
    assert statuses[-1] == CallStatus.ended
    assert observed[-1].ended_call_id == call_id


def test_session_call_view(coordinator) -> None:
    call_id = coordinator.initiate("host", "guest", "o", scheduled_session_id="s-1")
    view = PollingReadModel(coordinator).session_call("guest", "s-1")
    assert view.id == call_id
    assert view.scheduled_session_id == "s-1"
