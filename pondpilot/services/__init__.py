"""Services package"""

from .realtime_db import RealtimeDatabase, Subscription
from .threshold_evaluator import evaluate, is_valid_snapshot
from .auto_mode import AutoModeController
from .device_service import DeviceService
from .device_command import DeviceCommandSender
from .sensor_service import SensorService
from .alert_service import AlertService
from .pond_service import PondDirectory, PondStatusMonitor
from .connection_monitor import ConnectionMonitor
from .settings_service import SettingsService
from .schedule_executor import ScheduleExecutor

__all__ = [
    'RealtimeDatabase', 'Subscription', 'evaluate', 'is_valid_snapshot',
    'AutoModeController', 'DeviceService', 'DeviceCommandSender', 'SensorService',
    'AlertService', 'PondDirectory', 'PondStatusMonitor', 'ConnectionMonitor',
    'SettingsService', 'ScheduleExecutor',
]
