"""Core PondMonitor - wires the dashboard services for one pond"""

import asyncio
import logging
from typing import Optional

from .. import config
from ..services import (
    AlertService,
    AutoModeController,
    ConnectionMonitor,
    DeviceCommandSender,
    DeviceService,
    PondDirectory,
    PondStatusMonitor,
    RealtimeDatabase,
    ScheduleExecutor,
    SensorService,
    SettingsService,
)
from ..services.notifier import Notifier
from ..storage import LocalStore, OfflineWriteQueue
from ..storage.models import ThresholdConfig
from ..utils.paths import normalize_pond_id, status_last_seen_path

logger = logging.getLogger(__name__)

STATUS_REFRESH_INTERVAL_S = 5


class PondMonitor:
    """Main application orchestrating all pond services"""

    def __init__(self, db=None, store: Optional[LocalStore] = None, notifier: Optional[Notifier] = None,
                 pond_id: Optional[str] = None):
        logger.info("Initializing PondPilot...")

        self.pond_id = normalize_pond_id(pond_id or config.POND_ID)
        self.db = db or RealtimeDatabase()
        self.store = store or LocalStore(config.LOCAL_STORE_PATH)
        self.queue = OfflineWriteQueue(self.store)

        # Settings and connectivity
        self.settings = SettingsService(self.store, self.db)
        self.connection = ConnectionMonitor(self.db, status_last_seen_path(self.pond_id), self.store)

        # Realtime feeds
        self.sensors = SensorService(self.pond_id, self.db)
        self.alerts = AlertService(self.pond_id, self.db, self.store)
        self.ponds = PondDirectory(self.db, self.store, config.USER_ID, config.IS_ADMIN)
        self.pond_status = PondStatusMonitor(self.pond_id, self.db)

        # Device control
        self.devices = DeviceService(
            self.pond_id, self.db, self.store, self.queue, self.connection, read_only=config.READ_ONLY
        )
        self.commands = DeviceCommandSender(self.db)
        self.auto_mode = AutoModeController(self.pond_id, self.db, self.settings, notifier)
        self.schedules = ScheduleExecutor(self.pond_id, self.db, self.settings, notifier)

        # A device the user touches is no longer the controller's to switch off
        self.devices.on_manual_change(self.auto_mode.release)
        self.settings.on_change(self._on_settings_changed)

        self._tasks: list[asyncio.Task] = []
        self.running = False
        logger.info(f"PondPilot initialized (pond: {self.pond_id})")

    async def start_services(self):
        """Connect and start every service without blocking"""
        if isinstance(self.db, RealtimeDatabase) and not self.db.connected:
            self.db.connect()

        await self.connection.probe()
        await self.settings.sync_to_realtime(self.pond_id)

        self.sensors.start()
        self.alerts.start()
        self.ponds.start()
        self.pond_status.start()
        self.auto_mode.start()
        await self.devices.start()

        self._tasks.append(asyncio.create_task(self.connection.run()))
        self._tasks.append(asyncio.create_task(self._status_loop()))
        if config.SCHEDULE_EXECUTOR_ENABLED:
            self._tasks.append(asyncio.create_task(self.schedules.run_loop()))

        self.running = True
        logger.info("PondPilot started successfully")

    async def start(self):
        """Start the monitor and run until stopped"""
        try:
            logger.info("Starting PondPilot...")
            await self.start_services()

            while self.running:
                await asyncio.sleep(1)

        except Exception as e:
            logger.error(f"Error starting PondPilot: {e}", exc_info=True)
            raise

    async def stop(self):
        """Stop all services gracefully"""
        logger.info("Stopping PondPilot...")
        self.running = False

        self.connection.stop()
        self.schedules.stop()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        self.auto_mode.stop()
        self.devices.stop()
        self.sensors.stop()
        self.alerts.stop()
        self.ponds.stop()
        self.pond_status.stop()

        logger.info("PondPilot stopped")

    async def _status_loop(self):
        """Age out online flags between heartbeats"""
        while True:
            self.ponds.refresh_online()
            self.pond_status.check()
            await asyncio.sleep(STATUS_REFRESH_INTERVAL_S)

    def _on_settings_changed(self, settings: ThresholdConfig):
        self.auto_mode.restart()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.create_task(self.settings.sync_to_realtime(self.pond_id))
