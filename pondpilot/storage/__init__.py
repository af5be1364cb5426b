# Storage module - local persistence and the offline write queue
from .local_store import LocalStore
from .pending_queue import OfflineWriteQueue
from .models import ThresholdConfig, DeviceRecord, DevicePhase, PendingAction, ScheduleRecord

__all__ = ['LocalStore', 'OfflineWriteQueue', 'ThresholdConfig', 'DeviceRecord', 'DevicePhase', 'PendingAction', 'ScheduleRecord']
