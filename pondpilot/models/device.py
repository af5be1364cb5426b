"""Device, pond and alert view models"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Any, Optional
from ..storage.models import ListenerStatus

DEVICE_ICONS = {
    "motor": "Waves",
    "aerator": "Wind",
    "light": "Lightbulb",
    "pump": "Droplets",
    "heater": "Thermometer",
    "feeder": "Fish",
}


def device_icon(device_type: str) -> str:
    return DEVICE_ICONS.get(device_type.lower(), "Power")


@dataclass
class DeviceView:
    """Device as shown on the controls screen"""
    id: str
    name: str
    type: str
    is_on: bool
    is_auto: bool
    icon: str
    auto_condition: Optional[str] = None

    def to_dict(self):
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceView":
        return cls(**data)


@dataclass
class AlertView:
    id: str
    pond_id: str
    type: str
    severity: str  # "info", "warning" or "critical"
    message: str
    timestamp: datetime
    acknowledged: bool = False

    def to_dict(self):
        """Convert to JSON-serializable dict"""
        data = asdict(self)
        data["timestamp"] = int(self.timestamp.timestamp() * 1000)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AlertView":
        data = dict(data)
        data["timestamp"] = datetime.fromtimestamp(data["timestamp"] / 1000)
        return cls(**data)


@dataclass
class PondSummary:
    """Pond discovered under the ponds/ root"""
    id: str
    name: str
    is_online: bool
    last_seen: Optional[datetime]
    has_sensors: bool
    has_devices: bool
    owner_uid: Optional[str] = None
    owner_email: Optional[str] = None
    is_owner: bool = False

    def to_dict(self):
        """Convert to JSON-serializable dict"""
        data = asdict(self)
        data["last_seen"] = int(self.last_seen.timestamp() * 1000) if self.last_seen else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PondSummary":
        data = dict(data)
        if data.get("last_seen"):
            data["last_seen"] = datetime.fromtimestamp(data["last_seen"] / 1000)
        return cls(**data)


@dataclass
class PondStatus:
    """Heartbeat state of one pond controller"""
    is_online: bool = False
    last_seen: Optional[datetime] = None
    connection_error: Optional[str] = None


@dataclass
class ConnectionStatus:
    is_connected: bool = False
    last_sync_time: Optional[datetime] = None


@dataclass
class SensorDebugInfo:
    path: str = ""
    listener_status: ListenerStatus = ListenerStatus.CONNECTING
    last_data_received: Optional[datetime] = None
    raw_data: Any = None
    errors: list = field(default_factory=list)

    def add_error(self, message: str):
        # Keep the last five
        self.errors = self.errors[-4:] + [message]
