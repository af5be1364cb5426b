"""Device service - realtime device list and the manual write path"""

import logging
from typing import Callable, Optional

from ..models import DeviceView
from ..models.device import device_icon
from ..storage.local_store import LocalStore, DEVICE_CACHE_PREFIX
from ..storage.models import DeviceMode, DeviceRecord, PendingAction
from ..storage.pending_queue import OfflineWriteQueue
from ..utils.paths import device_path, devices_path, normalize_pond_id

logger = logging.getLogger(__name__)


class DeviceService:
    """Devices of one pond, with offline queueing of manual updates"""

    def __init__(
        self,
        pond_id: str,
        db,
        store: LocalStore,
        queue: OfflineWriteQueue,
        connection,
        read_only: bool = False,
    ):
        self.pond_id = normalize_pond_id(pond_id)
        self.db = db
        self.store = store
        self.queue = queue
        self.connection = connection
        self.read_only = read_only

        self.devices: list[DeviceView] = self._get_cached()
        self.is_loading = True
        self.error: Optional[str] = None
        self.firebase_connected = False
        self._subscription = None
        self._manual_listeners: list[Callable[[str], None]] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Subscribe to devices and replay anything queued while offline"""
        self.connection.on_online(self.sync_pending)
        self._subscription = self.db.listen(
            devices_path(self.pond_id), self._handle_value, self._handle_error
        )
        if self.connection.is_online:
            await self.sync_pending()

    def stop(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def on_manual_change(self, callback: Callable[[str], None]):
        """Register a callback fired with the device id of every user update"""
        self._manual_listeners.append(callback)

    # ------------------------------------------------------------------
    # Realtime feed
    # ------------------------------------------------------------------

    def _handle_value(self, data):
        try:
            if data:
                self.devices = [self._to_view(key, value) for key, value in data.items()]
                self._set_cached(self.devices)
                self.error = None
            else:
                self.devices = []
            self.firebase_connected = True
        except Exception as e:
            logger.error(f"Error parsing Firebase device data: {e}")
            self.error = "Failed to parse device data"
            self.firebase_connected = False
        self.is_loading = False

    def _handle_error(self, error: Exception):
        logger.error(f"Firebase device read error: {error}")
        self.error = "Failed to connect to device data"
        self.firebase_connected = False
        self.is_loading = False
        cached = self._get_cached()
        if cached:
            self.devices = cached

    @staticmethod
    def _to_view(key: str, value) -> DeviceView:
        record = DeviceRecord.from_raw(value)
        return DeviceView(
            id=key,
            name=record.name or key[:1].upper() + key[1:],
            type=record.type or key,
            is_on=record.state == 1,
            is_auto=record.mode == DeviceMode.AUTO,
            icon=device_icon(key),
            auto_condition=record.auto_condition,
        )

    def get_device(self, device_id: str) -> Optional[DeviceView]:
        return next((d for d in self.devices if d.id == device_id), None)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def update_device(self, device_id: str, updates: dict) -> bool:
        """Write device updates, or queue them when offline.

        Returns True if the write was sent or queued.
        """
        if self.read_only:
            logger.warning("Device control is read-only")
            return False

        previous = list(self.devices)
        self._apply_optimistic(device_id, updates)
        self._notify_manual_change(device_id)

        if not self.connection.is_online:
            self.queue.enqueue(self.pond_id, device_id, updates)
            return True

        try:
            await self.db.update(device_path(self.pond_id, device_id), updates)
            logger.info(f"Device {device_id} updated: {updates}")
            return True
        except Exception as e:
            logger.error(f"Error updating device {device_id}: {e}")
            self.error = "Failed to update device"
            self.devices = previous
            self._set_cached(previous)
            return False

    async def toggle_device(self, device_id: str) -> bool:
        """Flip on/off; a manual toggle always leaves the device in manual mode"""
        device = self.get_device(device_id)
        if device is None:
            logger.error(f"Device not found: {device_id}")
            return False
        return await self.update_device(device_id, {
            "state": 0 if device.is_on else 1,
            "mode": DeviceMode.MANUAL.value,
        })

    async def set_device_auto(self, device_id: str, is_auto: bool) -> bool:
        mode = DeviceMode.AUTO if is_auto else DeviceMode.MANUAL
        return await self.update_device(device_id, {"mode": mode.value})

    async def set_device_state(self, device_id: str, is_on: bool) -> bool:
        return await self.update_device(device_id, {"state": 1 if is_on else 0})

    async def sync_pending(self) -> int:
        """Replay queued actions; called at startup and on reconnect"""
        if self.queue.count() == 0:
            return 0
        synced = await self.queue.flush(self._write_pending)
        logger.info(f"Synced {synced} pending device action(s)")
        return synced

    async def _write_pending(self, action: PendingAction):
        await self.db.update(device_path(action.pond_id, action.device_id), action.updates)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply_optimistic(self, device_id: str, updates: dict):
        updated = []
        for device in self.devices:
            if device.id == device_id:
                device = DeviceView(**device.to_dict())
                if "state" in updates:
                    device.is_on = updates["state"] == 1
                if "mode" in updates:
                    device.is_auto = updates["mode"] == DeviceMode.AUTO.value
            updated.append(device)
        self.devices = updated
        self._set_cached(updated)

    def _notify_manual_change(self, device_id: str):
        for callback in self._manual_listeners:
            try:
                callback(device_id)
            except Exception as e:
                logger.error(f"Manual change listener failed: {e}")

    def _cache_key(self) -> str:
        return f"{DEVICE_CACHE_PREFIX}{self.pond_id}"

    def _get_cached(self) -> list[DeviceView]:
        cached = self.store.get_json(self._cache_key(), [])
        try:
            return [DeviceView.from_dict(d) for d in cached]
        except (TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable device cache: {e}")
            return []

    def _set_cached(self, devices: list[DeviceView]):
        self.store.set_json(self._cache_key(), [d.to_dict() for d in devices])
