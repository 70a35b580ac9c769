import time

import pytest

from healthapp.auth.session import SessionManager


def test_create_and_resolve(sessions):
    handle = sessions.create("user-1")
    assert sessions.current_user(handle) == "user-1"
    rec = sessions.get(handle)
    assert rec.user_id == "user-1"
    assert rec.created_at is not None


def test_handles_are_opaque_and_distinct(sessions):
    a = sessions.create("user-1")
    b = sessions.create("user-1")
    assert a != b
    assert "user-1" not in a


def test_destroy_invalidates_handle(sessions):
    handle = sessions.create("user-1")
    assert sessions.destroy(handle) is True
    assert sessions.current_user(handle) is None
    # Second destroy reports not-found instead of failing.
    assert sessions.destroy(handle) is False


@pytest.mark.parametrize("handle", ["", "garbage", "eyJ0IjoiYWJjIn0.bad.sig"])
def test_invalid_handles_resolve_to_none(sessions, handle):
    assert sessions.current_user(handle) is None
    assert sessions.destroy(handle) is False


def test_handle_signed_with_other_secret_is_rejected(sessions):
    other = SessionManager("another-secret")
    handle = other.create("user-1")
    assert sessions.current_user(handle) is None


def test_expired_handle_is_rejected():
    sessions = SessionManager("test-secret", max_age=1)
    handle = sessions.create("user-1")
    time.sleep(2.1)
    assert sessions.current_user(handle) is None


def test_missing_secret_is_an_error():
    with pytest.raises(RuntimeError):
        SessionManager("")


def test_expired_sessions_are_evicted_on_create():
    sessions = SessionManager("test-secret", max_age=1)
    for _ in range(100):
        sessions.create("user-1")
    time.sleep(2.1)
    fresh = sessions.create("user-2")

    assert len(sessions._sessions) == 1
    assert sessions.current_user(fresh) == "user-2"


def test_live_sessions_survive_eviction(sessions):
    first = sessions.create("user-1")
    sessions.create("user-2")
    assert sessions.current_user(first) == "user-1"
    assert len(sessions._sessions) == 2
