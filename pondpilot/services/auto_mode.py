"""Auto mode - drives devices from critical sensor conditions"""

import asyncio
import logging
from typing import Optional

from ..models import Condition, SensorSnapshot
from ..storage.models import ConditionType, DeviceAction, DevicePhase, Severity
from ..utils.paths import device_path, sensors_path
from .notifier import Notifier, log_notifier
from .threshold_evaluator import evaluate

logger = logging.getLogger(__name__)

# Condition action -> device type it switches on
ACTION_DEVICES = {
    DeviceAction.AERATOR_ON: "aerator",
    DeviceAction.MOTOR_ON: "motor",
}


class AutoModeController:
    """Reacts to sensor snapshots for one pond.

    Devices this controller switched on are tracked in ``auto_activated`` and
    switched back to manual-off once every condition has cleared. Devices
    switched on by hand are never touched.

    Known defect: a failed deactivation write is logged but the device is
    still dropped from ``auto_activated``, leaving it on in auto mode with
    nothing tracking it.
    """

    def __init__(self, pond_id: str, db, settings, notifier: Optional[Notifier] = None):
        self.pond_id = pond_id
        self.db = db
        self.settings = settings
        self.notify = notifier or log_notifier
        self.auto_activated: set[str] = set()
        self.last_condition_types: list[ConditionType] = []
        self._subscription = None
        # Listener events arrive as separate tasks; one snapshot at a time
        self._lock = asyncio.Lock()
        logger.info(f"Auto mode controller initialized for pond {pond_id}")

    @property
    def is_active(self) -> bool:
        return self.settings.current.auto_mode_enabled

    def start(self):
        """Subscribe to the pond's sensors while auto mode is enabled"""
        if self._subscription is not None:
            return
        if not self.is_active:
            logger.info("Auto mode disabled - not subscribing to sensors")
            return
        self._subscription = self.db.listen(
            sensors_path(self.pond_id), self.handle_snapshot, self._on_error
        )

    def stop(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def restart(self):
        """Re-evaluate the subscription after settings change"""
        self.stop()
        self.start()

    async def handle_snapshot(self, data) -> list[Condition]:
        """Evaluate one sensor payload and apply the transition rules"""
        if not data or not isinstance(data, dict):
            return []

        async with self._lock:
            return await self._apply_snapshot(data)

    async def _apply_snapshot(self, data) -> list[Condition]:
        thresholds = self.settings.current
        conditions = evaluate(SensorSnapshot.from_raw(data), thresholds)
        condition_types = [c.type for c in conditions]

        previous = self.last_condition_types
        has_new = any(t not in previous for t in condition_types)
        resolved = len(previous) > 0 and len(condition_types) == 0

        if has_new and self.is_active and thresholds.alerts_enabled:
            for condition in conditions:
                if condition.type in previous:
                    continue
                if condition.severity == Severity.CRITICAL:
                    self.notify("error", condition.message)
                else:
                    self.notify("warning", condition.message)

                device_type = ACTION_DEVICES.get(condition.action)
                if device_type:
                    await self.activate_device(device_type)

        if resolved and self.is_active:
            self.notify("success", "Sensor values returned to safe range")
            await self.deactivate_auto_devices()

        self.last_condition_types = condition_types
        return conditions

    async def activate_device(self, device_type: str):
        """Switch a device to auto-on; tracked only if the write lands"""
        if not self.is_active:
            return

        try:
            await self.db.set(device_path(self.pond_id, device_type), DevicePhase.AUTO_ON.to_record())
            self.auto_activated.add(device_type)
            logger.info(f"[AutoMode] Activated {device_type} for pond {self.pond_id}")
        except Exception as e:
            logger.error(f"Error activating {device_type}: {e}")

    async def deactivate_auto_devices(self):
        """Return every auto-activated device to manual-off"""
        for device_type in sorted(self.auto_activated):
            try:
                await self.db.set(device_path(self.pond_id, device_type), DevicePhase.MANUAL_OFF.to_record())
                logger.info(f"[AutoMode] Deactivated {device_type} for pond {self.pond_id}")
            except Exception as e:
                logger.error(f"Error deactivating {device_type}: {e}")
        self.auto_activated.clear()

    def release(self, device_type: str):
        """Forget a device the user has taken over by hand"""
        if device_type in self.auto_activated:
            self.auto_activated.discard(device_type)
            logger.info(f"[AutoMode] {device_type} taken over manually, no longer tracked")

    def _on_error(self, error: Exception):
        logger.error(f"Auto mode sensor subscription error: {error}")
