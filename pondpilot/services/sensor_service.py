"""Sensor service - realtime sensor feed, validation and display status"""

import logging
import math
import time
from datetime import datetime
from typing import Any, Optional

from .. import config
from ..models import SensorReadings, SensorStatus, SensorDebugInfo
from ..storage.models import ListenerStatus, SensorLevel
from ..utils.paths import sensors_path, status_last_seen_path

logger = logging.getLogger(__name__)

# Accepted raw ranges per realtime key; -127 is a DS18B20 with no probe
VALID_RANGES = {
    "temperature": (-100, 100, False),  # (low, high, inclusive)
    "ph": (0, 14, True),
    "dissolvedOxygen": (0, 50, True),
    "turbidity": (0, 5000, True),
    "waterLevel": (0, 1000, True),
}

# Display bands: (label, unit, min, max, safe, warning); ranges are inclusive
# and None means unbounded
SENSOR_BANDS = {
    "ph": ("pH Level", "pH", 6.5, 8.5, (6.5, 8.5), (6.0, 9.0)),
    "do": ("Dissolved O₂", "mg/L", 5.0, 14.0, (5.0, None), (3.0, None)),
    "temperature": ("Temperature", "°C", 24, 32, (24, 32), (20, 35)),
    "turbidity": ("Turbidity", "NTU", 0, 50, (None, 25), (None, 40)),
    "waterLevel": ("Water Level", "cm", 0, 100, (30, 80), (20, 90)),
}


def is_valid_sensor_value(key: str, value: Any) -> bool:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if math.isnan(value):
        return False

    bounds = VALID_RANGES.get(key)
    if bounds is None:
        return True
    low, high, inclusive = bounds
    if inclusive:
        return low <= value <= high
    return low < value < high


def parse_sensor_data(data: Any) -> SensorReadings:
    """Validate each field independently; invalid fields become None"""
    if not isinstance(data, dict):
        return SensorReadings()

    def pick(key):
        value = data.get(key)
        return float(value) if is_valid_sensor_value(key, value) else None

    return SensorReadings(
        temperature=pick("temperature"),
        ph=pick("ph"),
        dissolved_oxygen=pick("dissolvedOxygen"),
        turbidity=pick("turbidity"),
        water_level=pick("waterLevel"),
    )


def _within(value: float, band) -> bool:
    low, high = band
    return (low is None or value >= low) and (high is None or value <= high)


def sensor_status(kind: str, value: float) -> SensorStatus:
    """Classify a reading as safe, warning or critical for display"""
    label, unit, minimum, maximum, safe, warning = SENSOR_BANDS[kind]
    if _within(value, safe):
        level = SensorLevel.SAFE
    elif _within(value, warning):
        level = SensorLevel.WARNING
    else:
        level = SensorLevel.CRITICAL
    return SensorStatus(value=value, status=level, unit=unit, label=label, min=minimum, max=maximum)


class SensorService:
    """Live sensor readings for one pond"""

    def __init__(self, pond_id: str, db, stale_threshold_ms: int = config.SENSOR_STALE_THRESHOLD_MS):
        self.pond_id = pond_id
        self.db = db
        self.stale_threshold_ms = stale_threshold_ms

        self.readings: Optional[SensorReadings] = None
        self.is_loading = True
        self.error: Optional[str] = None
        self.last_updated: Optional[datetime] = None
        self.firebase_connected = False
        self.debug_info = SensorDebugInfo(path=sensors_path(pond_id))
        self._last_seen_ms: Optional[float] = None
        self._subscriptions = []
        logger.info("Sensor service initialized")

    def start(self):
        if not self.pond_id:
            self._fail("No pond ID provided")
            return

        logger.info(f"[Sensors] Subscribing to: {sensors_path(self.pond_id)}")
        self.debug_info.listener_status = ListenerStatus.CONNECTING
        self._subscriptions = [
            self.db.listen(sensors_path(self.pond_id), self._handle_value, self._handle_error),
            self.db.listen(status_last_seen_path(self.pond_id), self._handle_last_seen),
        ]

    def stop(self):
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions = []
        self.debug_info.listener_status = ListenerStatus.DISCONNECTED

    def _handle_value(self, raw):
        now = datetime.now()
        logger.debug(f"[Sensors] Data received at {now.isoformat()}: {raw}")
        self.debug_info.listener_status = ListenerStatus.ACTIVE
        self.debug_info.last_data_received = now
        self.debug_info.raw_data = raw
        self.debug_info.errors = []

        if raw:
            self.readings = parse_sensor_data(raw)
            self.last_updated = now
            self._last_seen_ms = now.timestamp() * 1000
        else:
            self.readings = None
            logger.info(f"[Sensors] No data at path: {sensors_path(self.pond_id)}")

        self.firebase_connected = True
        self.error = None
        self.is_loading = False

    def _handle_last_seen(self, timestamp):
        if isinstance(timestamp, (int, float)) and timestamp:
            self._last_seen_ms = timestamp

    def _handle_error(self, error: Exception):
        self._fail(f"Firebase connection error: {error}")

    def _fail(self, message: str):
        logger.error(f"[Sensors] {message}")
        self.error = message
        self.firebase_connected = False
        self.is_loading = False
        self.debug_info.listener_status = ListenerStatus.ERROR
        self.debug_info.add_error(message)

    def is_stale(self, now_ms: Optional[float] = None) -> bool:
        """No reading or heartbeat within the stale threshold"""
        if self._last_seen_ms is None:
            return False
        now_ms = now_ms if now_ms is not None else time.time() * 1000
        return now_ms - self._last_seen_ms > self.stale_threshold_ms
