"""Device commands with acknowledgment from the pond controller"""

import asyncio
import logging
import time

from .. import config
from ..storage.models import CommandStatus, DeviceMode
from ..utils.paths import device_field_path

logger = logging.getLogger(__name__)

STATUS_TEXT = {
    CommandStatus.SENDING: "Sending...",
    CommandStatus.SENT: "Command Sent",
    CommandStatus.ACKNOWLEDGED: "Device Acknowledged",
    CommandStatus.ERROR: "Command Failed",
}


def command_status_text(status: CommandStatus) -> str:
    return STATUS_TEXT.get(status, "")


class DeviceCommandSender:
    """Writes mode and state leaves, then waits briefly for the device's ack echo"""

    def __init__(self, db, ack_timeout: float = config.ACK_TIMEOUT_S, ack_freshness_ms: int = config.ACK_FRESHNESS_MS):
        self.db = db
        self.ack_timeout = ack_timeout
        self.ack_freshness_ms = ack_freshness_ms
        self.status = CommandStatus.IDLE

    async def send_command(self, pond_id: str, device_type: str, state: int, mode: DeviceMode = DeviceMode.MANUAL) -> bool:
        """Send a command. Returns True once written, acknowledged or not."""
        if state not in (0, 1):
            raise ValueError(f"Device state must be 0 or 1, got {state!r}")

        if self.db is None:
            self.status = CommandStatus.ERROR
            return False

        self.status = CommandStatus.SENDING
        mode = DeviceMode(mode)

        # Leaf writes only; the device object also carries ack and metadata
        try:
            await self.db.set(device_field_path(pond_id, device_type, "mode"), mode.value)
            await self.db.set(device_field_path(pond_id, device_type, "state"), state)
        except Exception as e:
            logger.error(f"Command error: {e}")
            self.status = CommandStatus.ERROR
            return False

        self.status = CommandStatus.SENT
        logger.info(f"Command sent: {device_type} -> state={state}, mode={mode.value} (pond {pond_id})")

        acknowledged = asyncio.get_running_loop().create_future()

        def on_ack(ack_time):
            if acknowledged.done():
                return
            if isinstance(ack_time, (int, float)) and ack_time and time.time() * 1000 - ack_time < self.ack_freshness_ms:
                acknowledged.set_result(True)

        subscription = self.db.listen(device_field_path(pond_id, device_type, "ack"), on_ack)
        try:
            await asyncio.wait_for(acknowledged, self.ack_timeout)
            self.status = CommandStatus.ACKNOWLEDGED
            logger.info(f"Device {device_type} acknowledged")
        except asyncio.TimeoutError:
            # Even without ack, command was sent
            logger.debug(f"No ack from {device_type} within {self.ack_timeout}s")
        finally:
            subscription.close()

        return True
