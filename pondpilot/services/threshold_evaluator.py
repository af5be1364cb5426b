"""Threshold evaluation - turns a sensor snapshot into critical conditions"""

import logging
from ..models import Condition, SensorSnapshot
from ..storage.models import ConditionType, DeviceAction, Severity, ThresholdConfig

logger = logging.getLogger(__name__)

# How far past a bound a reading must be before the breach is critical
DO_CRITICAL_MARGIN = 1.0  # mg/L
TEMP_CRITICAL_MARGIN = 3.0  # degrees C
PH_CRITICAL_MARGIN = 0.5


def is_valid_snapshot(snapshot: SensorSnapshot) -> bool:
    """Reject readings from disconnected or faulty probes.

    A DS18B20 with no probe attached reports -127.
    """
    if snapshot.temperature <= -100 or snapshot.temperature >= 100:
        return False
    if snapshot.ph < 0 or snapshot.ph > 14:
        return False
    if snapshot.dissolved_oxygen < 0 or snapshot.dissolved_oxygen > 20:
        return False
    return True


def evaluate(snapshot: SensorSnapshot, thresholds: ThresholdConfig) -> list[Condition]:
    """Return one condition per breached bound, or none for an invalid snapshot."""
    if not is_valid_snapshot(snapshot):
        logger.debug(f"Ignoring invalid sensor snapshot: {snapshot}")
        return []

    conditions = []
    do = snapshot.dissolved_oxygen
    temp = snapshot.temperature
    ph = snapshot.ph

    # Low dissolved oxygen
    if do < thresholds.do_min:
        conditions.append(Condition(
            type=ConditionType.LOW_DO,
            severity=Severity.CRITICAL if do < thresholds.do_min - DO_CRITICAL_MARGIN else Severity.WARNING,
            message=f"Low DO: {do:.1f} mg/L",
            action=DeviceAction.AERATOR_ON,
        ))

    # High temperature
    if temp > thresholds.temp_max:
        conditions.append(Condition(
            type=ConditionType.HIGH_TEMP,
            severity=Severity.CRITICAL if temp > thresholds.temp_max + TEMP_CRITICAL_MARGIN else Severity.WARNING,
            message=f"High Temp: {temp:.1f}°C",
            action=DeviceAction.MOTOR_ON,
        ))

    # Low temperature
    if temp < thresholds.temp_min:
        conditions.append(Condition(
            type=ConditionType.LOW_TEMP,
            severity=Severity.CRITICAL if temp < thresholds.temp_min - TEMP_CRITICAL_MARGIN else Severity.WARNING,
            message=f"Low Temp: {temp:.1f}°C",
            action=DeviceAction.ALERT_ONLY,
        ))

    # Abnormal pH
    if ph < thresholds.ph_min or ph > thresholds.ph_max:
        far_out = ph < thresholds.ph_min - PH_CRITICAL_MARGIN or ph > thresholds.ph_max + PH_CRITICAL_MARGIN
        conditions.append(Condition(
            type=ConditionType.ABNORMAL_PH,
            severity=Severity.CRITICAL if far_out else Severity.WARNING,
            message=f"Abnormal pH: {ph:.2f}",
            action=DeviceAction.ALERT_ONLY,
        ))

    return conditions
