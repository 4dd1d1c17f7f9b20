from datetime import timedelta

import pytest

from database import init_db, make_engine, make_session_factory
from sessions import DatabaseSessionStore, MemorySessionStore, utcnow


@pytest.fixture(params=["memory", "database"])
def store(request):
    if request.param == "memory":
        return MemorySessionStore()
    engine = make_engine("sqlite://")
    init_db(engine)
    return DatabaseSessionStore(make_session_factory(engine))


def test_set_and_get(store):
    expires = utcnow() + timedelta(hours=1)
    store.set("abc", 7, expires)
    record = store.get("abc")
    assert record.user_id == 7
    assert abs(record.expires_at - expires) < timedelta(seconds=1)


def test_unknown_and_destroyed_sessions(store):
    assert store.get("missing") is None
    store.set("abc", 7, utcnow() + timedelta(hours=1))
    store.destroy("abc")
    store.destroy("abc")
    assert store.get("abc") is None


def test_set_replaces_existing_session(store):
    store.set("abc", 7, utcnow() + timedelta(hours=1))
    store.set("abc", 8, utcnow() + timedelta(hours=2))
    assert store.get("abc").user_id == 8


def test_expired_sessions_are_hidden_and_pruned(store):
    store.set("old", 1, utcnow() - timedelta(seconds=5))
    store.set("live", 2, utcnow() + timedelta(hours=1))
    assert store.get("old") is None
    assert store.prune() == 1
    assert store.get("live").user_id == 2
    assert store.prune() == 0


def test_memory_store_prunes_lazily_after_check_period():
    store = MemorySessionStore(check_period=timedelta(0))
    store.set("old", 1, utcnow() - timedelta(seconds=5))
    store.set("live", 2, utcnow() + timedelta(hours=1))
    assert len(store) == 1
