"""Offline write queue"""

from pondpilot.storage.local_store import PENDING_ACTIONS_KEY


def test_enqueue_persists_action(queue, store):
    action = queue.enqueue("pond1", "aerator", {"state": 1}, timestamp=1000)

    assert action.id == "1000_aerator"
    assert queue.count() == 1
    raw = store.get_json(PENDING_ACTIONS_KEY)
    assert raw == [{
        "id": "1000_aerator",
        "pondId": "pond1",
        "deviceId": "aerator",
        "updates": {"state": 1},
        "timestamp": 1000,
    }]


def test_last_write_wins_per_device(queue):
    queue.enqueue("pond1", "aerator", {"state": 1}, timestamp=1000)
    queue.enqueue("pond1", "motor", {"state": 1}, timestamp=1001)
    queue.enqueue("pond1", "aerator", {"state": 0, "mode": "manual"}, timestamp=1002)

    pending = queue.pending()
    assert [(a.device_id, a.updates) for a in pending] == [
        ("motor", {"state": 1}),
        ("aerator", {"state": 0, "mode": "manual"}),
    ]


def test_same_device_in_different_ponds_is_kept(queue):
    queue.enqueue("pond1", "aerator", {"state": 1}, timestamp=1)
    queue.enqueue("pond2", "aerator", {"state": 1}, timestamp=2)

    assert queue.count() == 2


def test_malformed_entries_are_dropped(queue, store):
    store.set_json(PENDING_ACTIONS_KEY, [{"id": "x"}, {
        "id": "5_motor", "pondId": "pond1", "deviceId": "motor", "updates": {"state": 1}, "timestamp": 5,
    }])

    assert [a.device_id for a in queue.pending()] == ["motor"]


def test_non_list_payload_reads_as_empty(queue, store):
    store.set_json(PENDING_ACTIONS_KEY, {"not": "a list"})
    assert queue.pending() == []


async def test_flush_removes_only_successful_writes(queue):
    queue.enqueue("pond1", "aerator", {"state": 1}, timestamp=1)
    queue.enqueue("pond1", "motor", {"state": 1}, timestamp=2)
    written = []

    async def writer(action):
        if action.device_id == "motor":
            raise ConnectionError("offline")
        written.append(action.device_id)

    synced = await queue.flush(writer)

    assert synced == 1
    assert written == ["aerator"]
    assert [a.device_id for a in queue.pending()] == ["motor"]


async def test_flush_is_not_reentrant(queue):
    queue.enqueue("pond1", "aerator", {"state": 1}, timestamp=1)
    nested = []

    async def writer(action):
        nested.append(await queue.flush(writer))

    assert await queue.flush(writer) == 1
    assert nested == [0]
    assert queue.count() == 0


async def test_flush_requested_mid_flush_picks_up_new_actions(queue):
    queue.enqueue("pond1", "aerator", {"state": 1}, timestamp=1)
    written = []
    reconnect_results = []

    async def writer(action):
        written.append(action.device_id)
        if action.device_id == "aerator":
            # A reconnect queues and flushes while the startup flush is running
            queue.enqueue("pond1", "motor", {"state": 0}, timestamp=2)
            reconnect_results.append(await queue.flush(writer))

    assert await queue.flush(writer) == 2
    assert reconnect_results == [0]
    assert written == ["aerator", "motor"]
    assert queue.count() == 0
