"""Realtime Database path builders.

Devices in the field (ESP32 firmware) read and write these exact paths, so
they must not change shape.
"""

import re


def normalize_pond_id(pond_id: str) -> str:
    """Map a dashboard pond id to its realtime key ("3" -> "pond3")."""
    if pond_id.startswith("pond"):
        return pond_id
    digits = re.sub(r"[^0-9]", "", pond_id)
    return f"pond{digits or '1'}"


def pond_path(pond_id: str) -> str:
    return f"ponds/{pond_id}"


def sensors_path(pond_id: str) -> str:
    return f"ponds/{pond_id}/sensors"


def devices_path(pond_id: str) -> str:
    return f"ponds/{pond_id}/devices"


def device_path(pond_id: str, device_type: str) -> str:
    return f"ponds/{pond_id}/devices/{device_type}"


def device_field_path(pond_id: str, device_type: str, field: str) -> str:
    """Leaf path under a device: state, mode or ack."""
    return f"ponds/{pond_id}/devices/{device_type}/{field}"


def alerts_path(pond_id: str) -> str:
    return f"ponds/{pond_id}/alerts"


def alert_path(pond_id: str, alert_id: str) -> str:
    return f"ponds/{pond_id}/alerts/{alert_id}"


def schedules_path(pond_id: str) -> str:
    return f"ponds/{pond_id}/schedules"


def schedule_field_path(pond_id: str, device_type: str, schedule_id: str, field: str) -> str:
    return f"ponds/{pond_id}/schedules/{device_type}/{schedule_id}/{field}"


def config_path(pond_id: str) -> str:
    return f"ponds/{pond_id}/config"


def status_path(pond_id: str) -> str:
    return f"ponds/{pond_id}/status"


def status_last_seen_path(pond_id: str) -> str:
    return f"ponds/{pond_id}/status/lastSeen"


PONDS_ROOT = "ponds"
