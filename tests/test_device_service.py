"""Device list, optimistic writes and offline replay"""

import pytest

from pondpilot.services.device_service import DeviceService
from pondpilot.storage.local_store import DEVICE_CACHE_PREFIX

from conftest import FakeConnection

DEVICES = {
    "aerator": {"state": 0, "mode": "manual"},
    "motor": {"state": 1, "mode": "auto", "name": "Paddle Wheel", "autoCondition": "high_temp"},
}


@pytest.fixture
def connection():
    return FakeConnection(online=True)


@pytest.fixture
async def service(db, store, queue, connection):
    await db.push("ponds/pond1/devices", DEVICES)
    svc = DeviceService("pond1", db, store, queue, connection)
    await svc.start()
    await db.settle()
    yield svc
    svc.stop()


async def test_start_loads_devices(service):
    assert service.is_loading is False
    assert service.firebase_connected is True

    aerator = service.get_device("aerator")
    assert aerator.name == "Aerator"
    assert aerator.is_on is False
    assert aerator.is_auto is False
    assert aerator.icon == "Wind"

    motor = service.get_device("motor")
    assert motor.name == "Paddle Wheel"
    assert motor.is_on is True
    assert motor.is_auto is True
    assert motor.auto_condition == "high_temp"


async def test_device_list_is_cached(service, store):
    cached = store.get_json(f"{DEVICE_CACHE_PREFIX}pond1")
    assert sorted(d["id"] for d in cached) == ["aerator", "motor"]


async def test_toggle_writes_state_and_manual_mode(service, db):
    assert await service.toggle_device("motor") is True

    assert db.writes[-1] == ("update", "ponds/pond1/devices/motor", {"state": 0, "mode": "manual"})
    assert service.get_device("motor").is_on is False
    assert service.get_device("motor").is_auto is False


async def test_toggle_unknown_device(service, db):
    assert await service.toggle_device("heater") is False
    assert db.writes == []


async def test_manual_change_listeners_receive_device_id(service):
    touched = []
    service.on_manual_change(touched.append)

    await service.set_device_state("aerator", True)

    assert touched == ["aerator"]


async def test_set_device_auto_writes_mode_only(service, db):
    await service.set_device_auto("aerator", True)

    assert db.writes[-1] == ("update", "ponds/pond1/devices/aerator", {"mode": "auto"})
    assert db.read("ponds/pond1/devices/aerator") == {"state": 0, "mode": "auto"}


async def test_read_only_refuses_writes(db, store, queue, connection):
    svc = DeviceService("pond1", db, store, queue, connection, read_only=True)

    assert await svc.set_device_state("aerator", True) is False
    assert db.writes == []
    assert queue.count() == 0


async def test_failed_write_reverts_optimistic_update(service, db, store):
    db.failing_paths.add("ponds/pond1/devices/aerator")

    assert await service.set_device_state("aerator", True) is False

    assert service.get_device("aerator").is_on is False
    assert service.error == "Failed to update device"
    cached = {d["id"]: d for d in store.get_json(f"{DEVICE_CACHE_PREFIX}pond1")}
    assert cached["aerator"]["is_on"] is False


async def test_offline_updates_are_queued_then_replayed(service, db, queue, connection):
    connection.is_online = False

    assert await service.set_device_state("aerator", True) is True
    assert await service.toggle_device("aerator") is True

    # Optimistic state is visible while offline, nothing reached the backend
    assert service.get_device("aerator").is_on is False
    assert db.writes == []
    assert [a.updates for a in queue.pending()] == [{"state": 0, "mode": "manual"}]

    connection.is_online = True
    for callback in connection.callbacks:
        await callback()

    assert queue.count() == 0
    assert db.writes == [("update", "ponds/pond1/devices/aerator", {"state": 0, "mode": "manual"})]


async def test_start_replays_queue_when_online(db, store, queue, connection):
    queue.enqueue("pond1", "motor", {"state": 0}, timestamp=1)
    svc = DeviceService("pond1", db, store, queue, connection)

    await svc.start()

    assert queue.count() == 0
    assert db.read("ponds/pond1/devices/motor/state") == 0
    svc.stop()


async def test_replay_keeps_failed_actions(service, db, queue):
    queue.enqueue("pond1", "motor", {"state": 0}, timestamp=1)
    db.failing_paths.add("ponds/pond1/devices/motor")

    assert await service.sync_pending() == 0
    assert queue.count() == 1


async def test_listener_error_falls_back_to_cache(service, db):
    await db.fail_listeners("ponds/pond1/devices", ConnectionError("permission denied"))

    assert service.error == "Failed to connect to device data"
    assert service.firebase_connected is False
    assert sorted(d.id for d in service.devices) == ["aerator", "motor"]


async def test_numeric_pond_id_is_normalised(db, store, queue, connection):
    svc = DeviceService("3", db, store, queue, connection)
    assert svc.pond_id == "pond3"
