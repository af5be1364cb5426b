"""Alert service - realtime alert list with local cache"""

import logging
import time
from datetime import datetime
from typing import Optional

from ..models import AlertView
from ..storage.local_store import LocalStore, ALERTS_CACHE_KEY
from ..utils.paths import alert_path, alerts_path

logger = logging.getLogger(__name__)


class AlertService:
    """Alerts of one pond, newest first"""

    def __init__(self, pond_id: str, db, store: LocalStore):
        self.pond_id = pond_id
        self.db = db
        self.store = store
        self.alerts: list[AlertView] = self._get_cached()
        self.is_loading = True
        self.error: Optional[str] = None
        self.firebase_connected = False
        self._subscription = None

    def start(self):
        self._subscription = self.db.listen(alerts_path(self.pond_id), self._handle_value, self._handle_error)

    def stop(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    @property
    def unacknowledged(self) -> list[AlertView]:
        return [a for a in self.alerts if not a.acknowledged]

    def _handle_value(self, data):
        try:
            if data:
                alerts = [self._to_view(key, value) for key, value in data.items()]
                alerts.sort(key=lambda a: a.timestamp, reverse=True)
                self.alerts = alerts
                self._set_cached(alerts)
                self.error = None
            else:
                self.alerts = []
            self.firebase_connected = True
        except Exception as e:
            logger.error(f"Error parsing alerts data: {e}")
            self.error = "Failed to parse alerts"
            self.firebase_connected = False
        self.is_loading = False

    def _handle_error(self, error: Exception):
        logger.error(f"Firebase alerts read error: {error}")
        self.error = "Failed to connect to alerts"
        self.firebase_connected = False
        self.is_loading = False

    def _to_view(self, key: str, value: dict) -> AlertView:
        timestamp = value.get("timestamp") or int(time.time() * 1000)
        return AlertView(
            id=key,
            pond_id=self.pond_id,
            type=value.get("type") or "sensor",
            severity=value.get("severity") or "warning",
            message=value.get("message") or "Alert triggered",
            timestamp=datetime.fromtimestamp(timestamp / 1000),
            acknowledged=bool(value.get("acknowledged", False)),
        )

    async def acknowledge(self, alert_id: str):
        """Mark an alert acknowledged; errors propagate to the caller"""
        try:
            await self.db.update(alert_path(self.pond_id, alert_id), {"acknowledged": True})
            logger.info(f"Alert {alert_id} acknowledged")
        except Exception as e:
            logger.error(f"Error acknowledging alert: {e}")
            raise

    def _get_cached(self) -> list[AlertView]:
        cached = self.store.get_json(ALERTS_CACHE_KEY, [])
        try:
            return [AlertView.from_dict(a) for a in cached if a.get("pond_id") == self.pond_id]
        except (TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable alerts cache: {e}")
            return []

    def _set_cached(self, alerts: list[AlertView]):
        self.store.set_json(ALERTS_CACHE_KEY, [a.to_dict() for a in alerts])
