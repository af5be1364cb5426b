"""PondPilot package"""

from .core import PondMonitor
from .services import AutoModeController, DeviceService, evaluate
from .storage import OfflineWriteQueue

__all__ = ['PondMonitor', 'AutoModeController', 'DeviceService', 'evaluate', 'OfflineWriteQueue']
