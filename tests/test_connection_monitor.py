"""Connectivity probing and reconnect callbacks"""

from pondpilot.services.connection_monitor import ConnectionMonitor
from pondpilot.storage.local_store import LAST_SYNC_KEY

PROBE = "ponds/pond1/status/lastSeen"


async def test_unknown_state_counts_as_online(db):
    monitor = ConnectionMonitor(db, PROBE)

    assert monitor.is_online is True
    assert monitor.status.is_connected is False


async def test_reconnect_fires_callbacks_once(db, store):
    monitor = ConnectionMonitor(db, PROBE, store)
    calls = []

    async def replay():
        calls.append("async")

    monitor.on_online(replay)
    monitor.on_online(lambda: calls.append("sync"))

    assert await monitor.probe() is True
    assert calls == []

    db.offline = True
    assert await monitor.probe() is False
    assert monitor.is_online is False

    db.offline = False
    assert await monitor.probe() is True
    assert await monitor.probe() is True
    assert calls == ["async", "sync"]


async def test_failing_callback_does_not_stop_others(db):
    monitor = ConnectionMonitor(db, PROBE)
    calls = []

    def broken():
        raise RuntimeError("boom")

    monitor.on_online(broken)
    monitor.on_online(lambda: calls.append(1))

    await monitor.set_online(False)
    await monitor.set_online(True)

    assert calls == [1]


async def test_last_sync_time_is_persisted(db, store):
    monitor = ConnectionMonitor(db, PROBE, store)
    await monitor.probe()

    assert isinstance(store.get_json(LAST_SYNC_KEY), int)
    assert monitor.status.is_connected is True
    assert ConnectionMonitor(db, PROBE, store).last_sync_time is not None
