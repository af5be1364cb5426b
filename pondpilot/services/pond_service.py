"""Pond service - pond discovery and controller heartbeat status"""

import logging
import re
import time
from datetime import datetime
from typing import Optional

from .. import config
from ..models import PondStatus, PondSummary
from ..storage.local_store import LocalStore, PONDS_CACHE_KEY
from ..utils.paths import PONDS_ROOT, status_path

logger = logging.getLogger(__name__)


def _natural_key(value: str):
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", value)]


def pond_display_name(pond_id: str, stored_name: Optional[str] = None) -> str:
    if stored_name:
        return stored_name
    number = re.sub(r"[^0-9]", "", pond_id)
    if number:
        return f"Pond {number}"
    return pond_id[:1].upper() + pond_id[1:]


class PondDirectory:
    """Ponds visible to the signed-in account.

    Regular users see ponds they own; admins see every pond.
    """

    def __init__(self, db, store: LocalStore, user_id: Optional[str], is_admin: bool = False,
                 online_threshold_ms: int = config.POND_ONLINE_THRESHOLD_MS):
        self.db = db
        self.store = store
        self.user_id = user_id
        self.is_admin = is_admin
        self.online_threshold_ms = online_threshold_ms
        self.ponds: list[PondSummary] = self._visible_cache()
        self.is_loading = True
        self.error: Optional[str] = None
        self.firebase_connected = False
        self._subscription = None

    def start(self):
        if not self.user_id:
            # Not signed in - show no ponds
            self.ponds = []
            self.is_loading = False
            return
        self._subscription = self.db.listen(PONDS_ROOT, self._handle_value, self._handle_error)

    def stop(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    @property
    def pond_ids(self) -> list[str]:
        return [p.id for p in self.ponds]

    def get_pond(self, pond_id: str) -> Optional[PondSummary]:
        return next((p for p in self.ponds if p.id == pond_id), None)

    def _handle_value(self, data, now_ms: Optional[float] = None):
        self.firebase_connected = True
        self.is_loading = False
        self.error = None

        if not data:
            self.ponds = []
            self._save_cache([])
            return

        now_ms = now_ms if now_ms is not None else time.time() * 1000
        discovered = []
        for pond_id, pond_data in data.items():
            pond_data = pond_data if isinstance(pond_data, dict) else {}
            owner_uid = pond_data.get("ownerUid")
            is_owner = owner_uid == self.user_id
            if not self.is_admin and not is_owner:
                continue

            last_seen_ms = pond_data.get("lastSeen")
            if not isinstance(last_seen_ms, (int, float)):
                last_seen_ms = None
            discovered.append(PondSummary(
                id=pond_id,
                name=pond_display_name(pond_id, pond_data.get("name")),
                is_online=last_seen_ms is not None and now_ms - last_seen_ms < self.online_threshold_ms,
                last_seen=datetime.fromtimestamp(last_seen_ms / 1000) if last_seen_ms else None,
                has_sensors=bool(pond_data.get("sensors")),
                has_devices=bool(pond_data.get("devices")),
                owner_uid=owner_uid,
                owner_email=pond_data.get("ownerEmail"),
                is_owner=is_owner,
            ))

        discovered.sort(key=lambda p: _natural_key(p.id))
        self.ponds = discovered
        self._save_cache(discovered)

    def _handle_error(self, error: Exception):
        logger.error(f"Firebase ponds error: {error}")
        self.error = str(error)
        self.firebase_connected = False
        self.is_loading = False

        # Fall back to the cache, still filtered by ownership
        self.ponds = self._visible_cache()

    def refresh_online(self, now_ms: Optional[float] = None):
        """Re-derive online flags from lastSeen as time passes"""
        now_ms = now_ms if now_ms is not None else time.time() * 1000
        for pond in self.ponds:
            pond.is_online = bool(pond.last_seen) and now_ms - pond.last_seen.timestamp() * 1000 < self.online_threshold_ms

    def _visible_cache(self) -> list[PondSummary]:
        cached = self._load_cache()
        if self.is_admin:
            return cached
        return [p for p in cached if p.owner_uid == self.user_id]

    def _load_cache(self) -> list[PondSummary]:
        cached = self.store.get_json(PONDS_CACHE_KEY, [])
        try:
            return [PondSummary.from_dict(p) for p in cached]
        except (TypeError, AttributeError) as e:
            logger.warning(f"Failed to load ponds cache: {e}")
            return []

    def _save_cache(self, ponds: list[PondSummary]):
        self.store.set_json(PONDS_CACHE_KEY, [p.to_dict() for p in ponds])


class PondStatusMonitor:
    """Online/offline state of a pond controller from its heartbeat"""

    def __init__(self, pond_id: str, db, heartbeat_timeout_ms: int = config.POND_HEARTBEAT_TIMEOUT_MS):
        self.pond_id = pond_id
        self.db = db
        self.heartbeat_timeout_ms = heartbeat_timeout_ms
        self.status = PondStatus()
        self._subscription = None

    def start(self):
        self._subscription = self.db.listen(status_path(self.pond_id), self._handle_value, self._handle_error)

    def stop(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def _handle_value(self, data, now_ms: Optional[float] = None):
        if not data or not isinstance(data, dict):
            self.status = PondStatus(is_online=False, last_seen=None)
            return

        timestamp = data.get("lastSeen")
        if isinstance(timestamp, (int, float)) and timestamp:
            self.status.last_seen = datetime.fromtimestamp(timestamp / 1000)
            self.check(now_ms)
        elif data.get("online") is not None:
            # Fall back to the online flag when there is no heartbeat time
            self.status.is_online = data.get("online") is True
        self.status.connection_error = None

    def _handle_error(self, error: Exception):
        logger.error(f"Firebase status error: {error}")
        self.status.connection_error = "Failed to connect to device status"
        self.status.is_online = False

    def check(self, now_ms: Optional[float] = None) -> bool:
        """Recompute online from the last heartbeat"""
        if self.status.last_seen is not None:
            now_ms = now_ms if now_ms is not None else time.time() * 1000
            self.status.is_online = now_ms - self.status.last_seen.timestamp() * 1000 < self.heartbeat_timeout_ms
        return self.status.is_online
