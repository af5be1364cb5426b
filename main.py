"""
PondPilot - aquaculture pond monitoring and control

Subscribes to a pond's Realtime Database paths, runs auto mode and schedules,
and replays device writes queued while offline.
"""

import asyncio
import logging
import signal
import sys

from pondpilot.core import PondMonitor
from pondpilot.utils.logger import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


async def main():
    """Main entry point"""
    monitor = PondMonitor()

    # Handle shutdown signals
    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        monitor.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await monitor.start()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
    finally:
        await monitor.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Monitor stopped by user")
    except Exception as e:
        logger.error(f"Monitor crashed: {e}", exc_info=True)
        sys.exit(1)
