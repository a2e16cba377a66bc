import pytest
from sqlalchemy.exc import OperationalError

from studycore.sessions import retry_on_conflict, retry_store
from studycore.srs.database import session_scope
from studycore.srs.exceptions import ConcurrentModificationError, StoreUnavailableError


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr("studycore.sessions.retry.time.sleep", delays.append)
    return delays


def test_retry_store_recovers_from_transient_failure(no_sleep):
    calls = []

    @retry_store(retries=3, initial_delay=0.1)
    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise StoreUnavailableError("connection reset")
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 3
    assert no_sleep == [0.1, 0.2]


def test_retry_store_gives_up_after_bound():
    calls = []

    @retry_store
    def down():
        calls.append(1)
        raise StoreUnavailableError("down")

    with pytest.raises(StoreUnavailableError):
        down()
    assert len(calls) == 3


def test_retry_store_does_not_retry_other_errors():
    calls = []

    @retry_store
    def broken():
        calls.append(1)
        raise ValueError("bug")

    with pytest.raises(ValueError):
        broken()
    assert len(calls) == 1


def test_retry_on_conflict_retries_exactly_once():
    calls = []

    @retry_on_conflict
    def contended():
        calls.append(1)
        raise ConcurrentModificationError("learner-1", "track-1")

    with pytest.raises(ConcurrentModificationError):
        contended()
    assert len(calls) == 2


def test_retry_on_conflict_returns_second_attempt():
    calls = []

    @retry_on_conflict
    def contended_once():
        calls.append(1)
        if len(calls) == 1:
            raise ConcurrentModificationError("learner-1", "track-1")
        return "saved"

    assert contended_once() == "saved"


def test_driver_failures_surface_as_store_unavailable():
    with pytest.raises(StoreUnavailableError) as excinfo:
        with session_scope():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    assert isinstance(excinfo.value.cause, OperationalError)


@pytest.mark.parametrize("retries", [0, -1])
def test_retry_store_requires_at_least_one_attempt(retries):
    with pytest.raises(ValueError):
        @retry_store(retries=retries)
        def save():
            return "saved"


def test_retry_store_single_attempt_runs_the_call():
    calls = []

    @retry_store(retries=1)
    def save():
        calls.append(1)
        return "saved"

    assert save() == "saved"
    assert calls == [1]
