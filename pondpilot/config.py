"""Configuration for PondPilot"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
_repo_root = Path(__file__).parent.parent.resolve()
_env_file = _repo_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Base directory
BASE_DIR = Path(__file__).parent.resolve()

# Firebase
# Default to relative path (./firebase-key.json) but allow environment override
_default_creds = str(_repo_root / "firebase-key.json")
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH", _default_creds)
FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL", "")

# Pond being monitored, and the signed-in account (pond ownership filter)
POND_ID = os.getenv("POND_ID", "pond1")
USER_ID = os.getenv("USER_ID", "")
IS_ADMIN = os.getenv("IS_ADMIN", "false").lower() == "true"
READ_ONLY = os.getenv("READ_ONLY", "false").lower() == "true"

# Local storage (device cache, pending actions, ponds cache)
LOCAL_STORE_PATH = os.getenv("LOCAL_STORE_PATH", str(_repo_root / "data" / "pondpilot.db"))

# Threshold defaults (overridden by the account settings)
TEMP_MIN = float(os.getenv("TEMP_MIN", "25"))
TEMP_MAX = float(os.getenv("TEMP_MAX", "32"))
PH_MIN = float(os.getenv("PH_MIN", "6.5"))
PH_MAX = float(os.getenv("PH_MAX", "8.5"))
DO_MIN = float(os.getenv("DO_MIN", "5.0"))
AUTO_MODE_ENABLED = os.getenv("AUTO_MODE_ENABLED", "false").lower() == "true"
ALERTS_ENABLED = os.getenv("ALERTS_ENABLED", "true").lower() == "true"

# Timing
ACK_TIMEOUT_S = 3.0  # wait for device ack echo
ACK_FRESHNESS_MS = 5000  # ack timestamp must be younger than this
SENSOR_STALE_THRESHOLD_MS = 60 * 1000
POND_HEARTBEAT_TIMEOUT_MS = 15 * 1000
POND_ONLINE_THRESHOLD_MS = 30 * 1000
SCHEDULE_CHECK_INTERVAL_S = int(os.getenv("SCHEDULE_CHECK_INTERVAL_S", "30"))
CONNECTION_PROBE_INTERVAL_S = int(os.getenv("CONNECTION_PROBE_INTERVAL_S", "10"))
SCHEDULE_EXECUTOR_ENABLED = os.getenv("SCHEDULE_EXECUTOR_ENABLED", "true").lower() == "true"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = "logs/pondpilot.log"

# Debug
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
