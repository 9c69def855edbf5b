from datetime import datetime, timezone

import pytest

from revssh.session import Session, SessionState, SessionStatus


def test_new_session_defaults():
    session = Session("p")
    assert session.status == SessionStatus.stopped()
    assert session.pid is None
    assert session.start_time is None
    assert session.restart_count == 0


def test_simple_status_tags():
    assert SessionStatus.stopped().to_dict() == {"state": "Stopped"}
    assert SessionStatus.running().to_dict() == {"state": "Running"}


def test_failed_status_carries_reason():
    assert SessionStatus.failed("boom").to_dict() == {"state": "Failed", "details": "boom"}


def test_retrying_status_details():
    status = SessionStatus.retrying(1, 5)
    assert status.to_dict() == {"state": "Retrying", "details": {"attempt": 1, "max": 5}}


@pytest.mark.parametrize(
    "status",
    [
        SessionStatus.stopped(),
        SessionStatus.starting(),
        SessionStatus.running(),
        SessionStatus.failed("Exited with code: Some(255)"),
        SessionStatus.retrying(2, 10),
    ],
)
def test_status_round_trip(status):
    assert SessionStatus.from_dict(status.to_dict()) == status


def test_unknown_state_rejected():
    with pytest.raises(ValueError):
        SessionStatus.from_dict({"state": "Sleeping"})


def test_retrying_out_of_range_rejected():
    with pytest.raises(ValueError):
        SessionStatus.retrying(300, 5)


def test_session_round_trip_with_time():
    start = datetime(2024, 5, 1, 10, 20, 30, 123456, tzinfo=timezone.utc)
    session = Session(
        "prod",
        status=SessionStatus.running(),
        pid=4321,
        start_time=start,
        restart_count=2,
    )
    restored = Session.from_dict(session.to_dict())
    assert restored == session
    assert restored.status.state is SessionState.RUNNING


def test_start_time_serialized_in_utc():
    start = datetime(2024, 5, 1, 10, 20, 30, tzinfo=timezone.utc)
    text = Session("p", start_time=start).to_dict()["start_time"]
    assert text.endswith("Z")
    assert Session.from_dict(Session("p", start_time=start).to_dict()).start_time == start


def test_nanosecond_timestamp_parsed():
    data = {
        "profile_id": "p",
        "status": {"state": "Running"},
        "pid": 10,
        "start_time": "2024-05-01T10:20:30.123456789Z",
        "restart_count": 0,
    }
    session = Session.from_dict(data)
    assert session.start_time.microsecond == 123456
    assert session.start_time.tzinfo is not None


def test_missing_optional_fields_become_none():
    session = Session.from_dict(
        {"profile_id": "p", "status": {"state": "Stopped"}, "restart_count": 0}
    )
    assert session.pid is None
    assert session.start_time is None


def test_missing_restart_count_rejected():
    with pytest.raises(ValueError):
        Session.from_dict({"profile_id": "p", "status": {"state": "Stopped"}})