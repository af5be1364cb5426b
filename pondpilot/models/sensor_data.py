"""Sensor data models and schemas"""

from dataclasses import dataclass, asdict
from typing import Any, Optional
from ..storage.models import ConditionType, DeviceAction, SensorLevel, Severity


@dataclass
class SensorSnapshot:
    """Sensor values as evaluated against thresholds"""
    temperature: float  # Celsius
    ph: float
    dissolved_oxygen: float  # mg/L
    turbidity: Optional[float] = None  # NTU

    @classmethod
    def from_raw(cls, data: dict) -> "SensorSnapshot":
        """Build from ponds/{pondId}/sensors; missing values read as 0"""
        return cls(
            temperature=_number(data.get("temperature")),
            ph=_number(data.get("ph")),
            dissolved_oxygen=_number(data.get("dissolvedOxygen")),
            turbidity=_number(data.get("turbidity")),
        )

    def to_dict(self):
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class SensorReadings:
    """Validated sensor values for display; invalid readings are None"""
    temperature: Optional[float] = None
    ph: Optional[float] = None
    dissolved_oxygen: Optional[float] = None
    turbidity: Optional[float] = None
    water_level: Optional[float] = None

    def to_dict(self):
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class Condition:
    """Threshold breach derived from one snapshot (never persisted)"""
    type: ConditionType
    severity: Severity
    message: str
    action: Optional[DeviceAction] = None

    def to_dict(self):
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class SensorStatus:
    """Display status of a single sensor value"""
    value: float
    status: SensorLevel
    unit: str
    label: str
    min: float
    max: float


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)
