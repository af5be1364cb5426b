"""RealtimeDatabase wrapper over firebase_admin"""

import asyncio

import firebase_admin
import pytest

from pondpilot.services import realtime_db
from pondpilot.services.realtime_db import RealtimeDatabase


class FakeReference:
    def __init__(self, value=None):
        self.value = value
        self.callback = None
        self.closed = False

    def get(self):
        return self.value

    def set(self, value):
        self.value = value

    def listen(self, callback):
        self.callback = callback
        return self

    def close(self):
        self.closed = True


@pytest.fixture
def reference(monkeypatch):
    ref = FakeReference()
    monkeypatch.setattr(realtime_db.db, "reference", lambda path: ref)
    return ref


def test_connect_requires_credentials(monkeypatch, tmp_path):
    monkeypatch.setattr(firebase_admin, "_apps", {})
    database = RealtimeDatabase("https://example.firebaseio.com", str(tmp_path / "missing.json"))

    with pytest.raises(FileNotFoundError):
        database.connect()
    assert database.connected is False


def test_connect_requires_database_url(monkeypatch, tmp_path):
    monkeypatch.setattr(firebase_admin, "_apps", {})
    key = tmp_path / "key.json"
    key.write_text("{}")
    database = RealtimeDatabase("", str(key))
    database.database_url = ""

    with pytest.raises(ValueError):
        database.connect()


async def test_set_and_get_run_off_loop(reference):
    database = RealtimeDatabase("https://example.firebaseio.com")

    await database.set("ponds/pond1/devices/aerator/state", 1)

    assert await database.get("ponds/pond1/devices/aerator/state") == 1


async def test_listener_events_are_delivered_on_loop(reference):
    reference.value = {"ph": 7.1}
    received = asyncio.Queue()

    async def on_value(value):
        await received.put(value)

    subscription = RealtimeDatabase("https://example.firebaseio.com").listen("ponds/pond1/sensors", on_value)

    # The SDK fires events from its own thread with a patch; handlers get the full value
    await asyncio.to_thread(reference.callback, object())

    assert await asyncio.wait_for(received.get(), 1) == {"ph": 7.1}
    subscription.close()
    assert reference.closed is True
