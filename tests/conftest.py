"""Shared fixtures: an in-memory Realtime Database and a temporary local store"""

import asyncio
import copy
import inspect

import pytest

from pondpilot.storage import LocalStore, OfflineWriteQueue
from pondpilot.storage.models import ThresholdConfig


class FakeSubscription:
    def __init__(self, path, on_value, on_error):
        self.path = path
        self.on_value = on_value
        self.on_error = on_error
        self.closed = False

    def close(self):
        self.closed = True


class FakeRealtimeDatabase:
    """Nested-dict stand-in for RealtimeDatabase.

    Like the real listener, a new subscription receives the current value on
    the next loop iteration, and every write notifies overlapping paths.
    """

    def __init__(self, data=None):
        self.data = copy.deepcopy(data) if data else {}
        self.writes = []
        self.subscriptions = []
        self.failing_paths = set()
        self.offline = False
        # Suspend inside writes, like the worker-thread writes of the real client
        self.yield_on_write = False

    @staticmethod
    def _parts(path):
        return [p for p in path.split("/") if p]

    def read(self, path):
        node = self.data
        for part in self._parts(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    def _write(self, path, value):
        parts = self._parts(path)
        node = self.data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = copy.deepcopy(value)

    def _check(self, path):
        if self.offline or path in self.failing_paths:
            raise ConnectionError(f"unreachable: {path}")

    async def _pause(self):
        if self.yield_on_write:
            await asyncio.sleep(0)

    async def get(self, path):
        self._check(path)
        return self.read(path)

    async def set(self, path, value):
        self._check(path)
        await self._pause()
        self.writes.append(("set", path, copy.deepcopy(value)))
        self._write(path, value)
        await self._notify(path)

    async def update(self, path, values):
        self._check(path)
        await self._pause()
        self.writes.append(("update", path, copy.deepcopy(values)))
        for key, value in values.items():
            self._write(f"{path}/{key}", value)
        await self._notify(path)

    def listen(self, path, on_value, on_error=None):
        subscription = FakeSubscription(path, on_value, on_error)
        self.subscriptions.append(subscription)
        asyncio.get_running_loop().create_task(self._deliver(subscription))
        return subscription

    async def push(self, path, value):
        """Simulate a write from another client (pond firmware, another dashboard)"""
        self._write(path, value)
        await self._notify(path)

    async def fail_listeners(self, path, error):
        for subscription in self._open(path):
            if subscription.on_error:
                await _call(subscription.on_error, error)

    async def settle(self):
        for _ in range(5):
            await asyncio.sleep(0)

    def open_paths(self):
        return [s.path for s in self.subscriptions if not s.closed]

    def _open(self, changed):
        return [
            s for s in self.subscriptions
            if not s.closed and (changed.startswith(s.path) or s.path.startswith(changed))
        ]

    async def _notify(self, changed):
        for subscription in self._open(changed):
            await self._deliver(subscription)

    async def _deliver(self, subscription):
        if subscription.closed:
            return
        await _call(subscription.on_value, self.read(subscription.path))


async def _call(handler, arg):
    result = handler(arg)
    if inspect.isawaitable(result):
        await result


class StaticSettings:
    """Minimal settings holder exposing .current"""

    def __init__(self, **overrides):
        self.current = ThresholdConfig(**overrides)


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    def __call__(self, level, message):
        self.messages.append((level, message))

    def levels(self):
        return [level for level, _ in self.messages]


class FakeConnection:
    def __init__(self, online=True):
        self.is_online = online
        self.callbacks = []

    def on_online(self, callback):
        self.callbacks.append(callback)


@pytest.fixture
def db():
    return FakeRealtimeDatabase()


@pytest.fixture
def store(tmp_path):
    return LocalStore(str(tmp_path / "local.db"))


@pytest.fixture
def queue(store):
    return OfflineWriteQueue(store)


@pytest.fixture
def notifier():
    return RecordingNotifier()
