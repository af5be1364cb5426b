"""Models package"""

from .sensor_data import SensorSnapshot, SensorReadings, Condition, SensorStatus
from .device import DeviceView, AlertView, PondSummary, PondStatus, ConnectionStatus, SensorDebugInfo

__all__ = [
    'SensorSnapshot', 'SensorReadings', 'Condition', 'SensorStatus',
    'DeviceView', 'AlertView', 'PondSummary', 'PondStatus', 'ConnectionStatus', 'SensorDebugInfo',
]
