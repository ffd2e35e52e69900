import pytest

from weekwise import timezone_utils
from weekwise.event_manager import EventManager
from weekwise.event_store import EventStore


@pytest.fixture(autouse=True)
def local_timezone():
    timezone_utils.set_timezone("America/New_York")
    yield "America/New_York"
    timezone_utils.set_timezone(None)


@pytest.fixture(params=["sqlite", "json"])
def store(request, tmp_path):
    path = ":memory:" if request.param == "sqlite" else tmp_path / "events.json"
    event_store = EventStore(path)
    yield event_store
    event_store.close()


@pytest.fixture
def manager(store):
    return EventManager(store)
