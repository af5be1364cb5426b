"""
Schedule executor - runs device on/off time windows stored in the Realtime
Database under ponds/{pondId}/schedules/{deviceType}/{scheduleId}.

Rules:
- Auto mode overrides all schedules (nothing runs while it is enabled)
- Only runs on the schedule's days of week (0 = Sunday)
- Each ON/OFF edge runs at most once per schedule per day
- "once" schedules are disabled after their OFF edge
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from .. import config
from ..storage.models import DeviceMode, ScheduleRecord, ScheduleRepeat
from ..utils.paths import device_field_path, schedule_field_path, schedules_path
from .notifier import Notifier, log_notifier

logger = logging.getLogger(__name__)

# Minutes after startTime/endTime during which the edge may still fire
EXECUTION_WINDOW_MIN = 1


def parse_time(value: str) -> int:
    """'HH:mm' -> minute of day"""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class ScheduleExecutor:
    """Checks schedules periodically and switches devices at their edges"""

    def __init__(self, pond_id: str, db, settings, notifier: Optional[Notifier] = None,
                 interval: float = config.SCHEDULE_CHECK_INTERVAL_S):
        self.pond_id = pond_id
        self.db = db
        self.settings = settings
        self.notify = notifier or log_notifier
        self.interval = interval
        # execution key -> day (YYYY-MM-DD) it ran on
        self.executed: dict[str, str] = {}
        self._executing = False
        self._running = False
        logger.info("Schedule executor initialized")

    async def run_loop(self):
        """Main schedule loop"""
        logger.info("Starting schedule loop")
        self._running = True

        while self._running:
            try:
                await self.execute_schedules()
            except Exception as e:
                logger.error(f"Error in schedule loop: {e}")
            await asyncio.sleep(self.interval)

    def stop(self):
        self._running = False

    async def execute_schedules(self, now: Optional[datetime] = None) -> int:
        """Run due schedule edges. Returns the number of commands sent."""
        if self._executing:
            return 0

        # Auto mode overrides all schedules
        if self.settings.current.auto_mode_enabled:
            return 0

        self._executing = True
        sent = 0
        try:
            now = now or datetime.now()
            weekday = (now.weekday() + 1) % 7  # Sunday = 0
            minute_of_day = now.hour * 60 + now.minute
            today = now.strftime("%Y-%m-%d")

            data = await self.db.get(schedules_path(self.pond_id))
            if data:
                for device_type, device_schedules in data.items():
                    if not isinstance(device_schedules, dict):
                        continue
                    for schedule_id, raw in device_schedules.items():
                        schedule = self._parse(schedule_id, raw)
                        if schedule is None or not schedule.is_enabled:
                            continue
                        if weekday not in schedule.days_of_week:
                            continue
                        sent += await self._run_edges(device_type, schedule_id, schedule, minute_of_day, today)

            # Forget executions from previous days
            self.executed = {k: day for k, day in self.executed.items() if day == today}
        except Exception as e:
            logger.error(f"[ScheduleExecutor] Error: {e}")
        finally:
            self._executing = False
        return sent

    async def _run_edges(self, device_type: str, schedule_id: str, schedule: ScheduleRecord,
                         minute_of_day: int, today: str) -> int:
        try:
            start_minute = parse_time(schedule.start_time)
            end_minute = parse_time(schedule.end_time)
        except ValueError:
            logger.warning(f"[ScheduleExecutor] Bad time in schedule {schedule_id}: {schedule.start_time}-{schedule.end_time}")
            return 0

        name = schedule.device_name or device_type
        sent = 0

        on_key = f"{schedule_id}_ON_{today}"
        if start_minute <= minute_of_day <= start_minute + EXECUTION_WINDOW_MIN and on_key not in self.executed:
            if await self._send_device_command(device_type, 1, f"schedule:{schedule_id}"):
                self.executed[on_key] = today
                sent += 1
                self.notify("success", f"Schedule: {name} turned ON (scheduled at {schedule.start_time})")
                await self._mark_executed(device_type, schedule_id)

        off_key = f"{schedule_id}_OFF_{today}"
        if end_minute <= minute_of_day <= end_minute + EXECUTION_WINDOW_MIN and off_key not in self.executed:
            if await self._send_device_command(device_type, 0, f"schedule:{schedule_id}"):
                self.executed[off_key] = today
                sent += 1
                self.notify("info", f"Schedule: {name} turned OFF (scheduled at {schedule.end_time})")
                await self._mark_executed(device_type, schedule_id)

                if schedule.repeat == ScheduleRepeat.ONCE:
                    await self._disable(device_type, schedule_id)
        return sent

    def _parse(self, schedule_id: str, raw) -> Optional[ScheduleRecord]:
        if not isinstance(raw, dict):
            return None
        try:
            return ScheduleRecord.model_validate({k: v for k, v in raw.items() if v is not None})
        except ValidationError as e:
            logger.warning(f"[ScheduleExecutor] Skipping invalid schedule {schedule_id}: {e}")
            return None

    async def _send_device_command(self, device_type: str, state: int, source: str) -> bool:
        try:
            await self.db.set(device_field_path(self.pond_id, device_type, "mode"), DeviceMode.MANUAL.value)
            await self.db.set(device_field_path(self.pond_id, device_type, "state"), state)
            logger.info(f"[ScheduleExecutor] {device_type} -> {'ON' if state == 1 else 'OFF'} ({source})")
            return True
        except Exception as e:
            logger.error(f"[ScheduleExecutor] Failed to send command to {device_type}: {e}")
            return False

    async def _mark_executed(self, device_type: str, schedule_id: str):
        try:
            await self.db.set(
                schedule_field_path(self.pond_id, device_type, schedule_id, "lastExecuted"),
                int(time.time() * 1000),
            )
        except Exception as e:
            logger.warning(f"[ScheduleExecutor] Could not record lastExecuted for {schedule_id}: {e}")

    async def _disable(self, device_type: str, schedule_id: str):
        for field in ("enabled", "isActive"):
            try:
                await self.db.set(schedule_field_path(self.pond_id, device_type, schedule_id, field), False)
            except Exception as e:
                logger.warning(f"[ScheduleExecutor] Could not disable {schedule_id}: {e}")
