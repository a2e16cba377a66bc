from datetime import datetime, timezone

import pytest

from studycore import srs

OWNER = "learner-1"
TRACK = "track-1"


@pytest.fixture(autouse=True)
def store(tmp_path, monkeypatch):
    """Fresh SQLite card/session store per test."""
    monkeypatch.setenv("EVAL_TIMEZONE", "UTC")
    monkeypatch.setenv("STORE_TIMEOUT_SECONDS", "5")
    url = f"sqlite:///{tmp_path / 'studycore.db'}"
    srs.configure_engine(url)
    srs.init_db()
    yield url
    srs.dispose_engine()


@pytest.fixture
def as_of():
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_cards(as_of):
    def _make(count, owner_id=OWNER, track_id=TRACK, subject=None, now=None):
        contents = [
            {"front": f"Question {i}", "back": f"Answer {i}", "subject": subject}
            for i in range(count)
        ]
        return srs.create_cards(owner_id, track_id, contents, now=now or as_of)

    return _make


@pytest.fixture
def new_card(as_of):
    return srs.initialize_new_card(OWNER, TRACK, "Art. 97 Cost.", "Buon andamento", now=as_of)
