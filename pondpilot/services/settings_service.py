"""
Settings service - holds the account's thresholds and feature toggles.
Settings are cached locally and mirrored into the Realtime Database so the
pond controller can apply the same thresholds.
"""

import logging
from typing import Callable, Optional

from pydantic import ValidationError

from .. import config
from ..storage.local_store import LocalStore, SETTINGS_KEY
from ..storage.models import ThresholdConfig
from ..utils.paths import config_path

logger = logging.getLogger(__name__)


def default_settings() -> ThresholdConfig:
    """Defaults from environment configuration"""
    return ThresholdConfig(
        temp_min=config.TEMP_MIN,
        temp_max=config.TEMP_MAX,
        ph_min=config.PH_MIN,
        ph_max=config.PH_MAX,
        do_min=config.DO_MIN,
        auto_mode_enabled=config.AUTO_MODE_ENABLED,
        alerts_enabled=config.ALERTS_ENABLED,
    )


class SettingsService:
    """Current ThresholdConfig with local persistence"""

    def __init__(self, store: Optional[LocalStore] = None, db=None, initial: Optional[ThresholdConfig] = None):
        self.store = store
        self.db = db
        self.current = initial or self._load_cached() or default_settings()
        self._listeners: list[Callable[[ThresholdConfig], None]] = []
        logger.info(f"Settings loaded: {self.current.model_dump()}")

    def _load_cached(self) -> Optional[ThresholdConfig]:
        if self.store is None:
            return None
        cached = self.store.get_json(SETTINGS_KEY)
        if not cached:
            return None
        try:
            return ThresholdConfig.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid cached settings: {e}")
            return None

    def on_change(self, callback: Callable[[ThresholdConfig], None]):
        self._listeners.append(callback)

    def update(self, **updates) -> ThresholdConfig:
        """Apply updates; raises ValidationError and keeps the old settings if invalid"""
        merged = {**self.current.model_dump(), **updates}
        new_settings = ThresholdConfig.model_validate(merged)
        self.current = new_settings
        if self.store is not None:
            self.store.set_json(SETTINGS_KEY, new_settings.model_dump())
        logger.info(f"Settings updated: {updates}")

        for callback in self._listeners:
            try:
                callback(new_settings)
            except Exception as e:
                logger.error(f"Settings listener failed: {e}")
        return new_settings

    async def sync_to_realtime(self, pond_id: str) -> bool:
        """Mirror thresholds and auto mode to ponds/{pondId}/config"""
        if self.db is None:
            return False
        try:
            await self.db.set(config_path(pond_id), self.current.to_realtime())
            logger.info(f"Synced settings to {config_path(pond_id)}")
            return True
        except Exception as e:
            logger.error(f"Error syncing settings to Firebase: {e}")
            return False
