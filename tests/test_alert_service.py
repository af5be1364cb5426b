"""Alert feed"""

import pytest

from pondpilot.services.alert_service import AlertService

ALERTS = {
    "a1": {"type": "sensor", "severity": "critical", "message": "DO critically low", "timestamp": 1_700_000_000_000},
    "a2": {"severity": "info", "timestamp": 1_700_000_500_000, "acknowledged": True},
    "a3": {"timestamp": 1_699_999_000_000},
}


async def test_alerts_sorted_newest_first_with_defaults(db, store):
    await db.push("ponds/pond1/alerts", ALERTS)
    service = AlertService("pond1", db, store)
    service.start()
    await db.settle()

    assert [a.id for a in service.alerts] == ["a2", "a1", "a3"]
    a3 = service.alerts[-1]
    assert a3.type == "sensor"
    assert a3.severity == "warning"
    assert a3.message == "Alert triggered"
    assert a3.pond_id == "pond1"
    assert [a.id for a in service.unacknowledged] == ["a1", "a3"]
    service.stop()


async def test_alerts_survive_restart_through_cache(db, store):
    await db.push("ponds/pond1/alerts", ALERTS)
    first = AlertService("pond1", db, store)
    first.start()
    await db.settle()
    first.stop()

    cached = AlertService("pond1", db, store)
    assert [a.id for a in cached.alerts] == ["a2", "a1", "a3"]

    other_pond = AlertService("pond2", db, store)
    assert other_pond.alerts == []


async def test_acknowledge_updates_alert(db, store):
    await db.push("ponds/pond1/alerts", ALERTS)
    service = AlertService("pond1", db, store)
    service.start()
    await db.settle()

    await service.acknowledge("a1")

    assert db.read("ponds/pond1/alerts/a1/acknowledged") is True
    assert service.unacknowledged[0].id == "a3"
    service.stop()


async def test_acknowledge_failure_propagates(db, store):
    db.failing_paths.add("ponds/pond1/alerts/a1")
    service = AlertService("pond1", db, store)

    with pytest.raises(ConnectionError):
        await service.acknowledge("a1")


async def test_empty_alerts_path(db, store):
    service = AlertService("pond1", db, store)
    service.start()
    await db.settle()

    assert service.alerts == []
    assert service.firebase_connected is True
    service.stop()
