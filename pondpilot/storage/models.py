"""
Pydantic models for records stored in the Realtime Database and in local storage.
Field aliases match the camelCase keys the dashboard and pond firmware use.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Literal, Optional
from enum import Enum

# =============================================================================
# ENUMS
# =============================================================================

class DeviceMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class DevicePhase(str, Enum):
    """Explicit device state; replaces the raw (state, mode) pair."""
    MANUAL_OFF = "manual_off"
    MANUAL_ON = "manual_on"
    AUTO_OFF = "auto_off"
    AUTO_ON = "auto_on"

    @classmethod
    def from_parts(cls, state: int, mode: "DeviceMode") -> "DevicePhase":
        if mode == DeviceMode.AUTO:
            return cls.AUTO_ON if state == 1 else cls.AUTO_OFF
        return cls.MANUAL_ON if state == 1 else cls.MANUAL_OFF

    @property
    def state(self) -> int:
        return 1 if self in (DevicePhase.MANUAL_ON, DevicePhase.AUTO_ON) else 0

    @property
    def mode(self) -> "DeviceMode":
        if self in (DevicePhase.AUTO_ON, DevicePhase.AUTO_OFF):
            return DeviceMode.AUTO
        return DeviceMode.MANUAL

    def to_record(self) -> dict:
        """Wire form written to ponds/{pondId}/devices/{type}"""
        return {"state": self.state, "mode": self.mode.value}


class ConditionType(str, Enum):
    LOW_DO = "low_do"
    HIGH_TEMP = "high_temp"
    LOW_TEMP = "low_temp"
    ABNORMAL_PH = "abnormal_ph"


class Severity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class DeviceAction(str, Enum):
    AERATOR_ON = "aerator_on"
    MOTOR_ON = "motor_on"
    ALERT_ONLY = "alert_only"


class CommandStatus(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"
    ERROR = "error"


class SensorLevel(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


class ListenerStatus(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class ScheduleRepeat(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    CUSTOM = "custom"


# =============================================================================
# DATA MODELS
# =============================================================================

class ThresholdConfig(BaseModel):
    """Per-account thresholds and feature toggles"""
    temp_min: float = 25.0
    temp_max: float = 32.0
    ph_min: float = 6.5
    ph_max: float = 8.5
    do_min: float = 5.0
    auto_mode_enabled: bool = False
    alerts_enabled: bool = True

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.temp_min > self.temp_max:
            raise ValueError("temp_min must not exceed temp_max")
        if self.ph_min > self.ph_max:
            raise ValueError("ph_min must not exceed ph_max")
        return self

    def to_realtime(self) -> dict:
        """Shape mirrored to ponds/{pondId}/config for the pond controller"""
        return {
            "thresholds": {
                "temp_min": self.temp_min,
                "temp_max": self.temp_max,
                "ph_min": self.ph_min,
                "ph_max": self.ph_max,
                "do_min": self.do_min,
            },
            "auto_mode_enabled": self.auto_mode_enabled,
            "alerts_enabled": self.alerts_enabled,
        }


class DeviceRecord(BaseModel):
    state: Literal[0, 1] = 0
    mode: DeviceMode = DeviceMode.MANUAL
    name: Optional[str] = None
    type: Optional[str] = None
    auto_condition: Optional[str] = Field(default=None, alias="autoCondition")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_raw(cls, raw: Any) -> "DeviceRecord":
        """Build from an untrusted realtime value; never yields an invalid pair."""
        if not isinstance(raw, dict):
            return cls()
        mode = DeviceMode.AUTO if raw.get("mode") == DeviceMode.AUTO.value else DeviceMode.MANUAL
        return cls(
            state=1 if raw.get("state") == 1 else 0,
            mode=mode,
            name=raw.get("name"),
            type=raw.get("type"),
            autoCondition=raw.get("autoCondition"),
        )

    @property
    def phase(self) -> DevicePhase:
        return DevicePhase.from_parts(self.state, self.mode)


class PendingAction(BaseModel):
    """Device write waiting for connectivity"""
    id: str
    pond_id: str = Field(alias="pondId")
    device_id: str = Field(alias="deviceId")
    updates: dict
    timestamp: int

    model_config = ConfigDict(populate_by_name=True)


class ScheduleRecord(BaseModel):
    start_time: str = Field(alias="startTime")  # "HH:mm"
    end_time: str = Field(alias="endTime")  # "HH:mm"
    days_of_week: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4, 5, 6], alias="daysOfWeek")
    enabled: bool = True
    is_active: bool = Field(default=True, alias="isActive")
    repeat: Optional[ScheduleRepeat] = None
    device_id: Optional[str] = Field(default=None, alias="deviceId")
    device_name: Optional[str] = Field(default=None, alias="deviceName")
    last_executed: Optional[int] = Field(default=None, alias="lastExecuted")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_enabled(self) -> bool:
        return self.enabled and self.is_active
