"""Configuration providers for the mutable bot generation settings."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import ValidationError

from config.settings import BotConfig
from memory.backend import KeyValueBackend
from memory.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class ConfigProvider(ABC):
    """Supplies the BotConfig read on every prompt assembly."""

    @abstractmethod
    def get(self) -> BotConfig:
        pass


class StaticConfigProvider(ConfigProvider):
    """Fixed configuration, mostly for tests and the CLI."""

    def __init__(self, config: Optional[BotConfig] = None):
        self.config = config or BotConfig()

    def get(self) -> BotConfig:
        return self.config


class StoredConfigProvider(ConfigProvider):
    """
    Configuration kept under a single key on the durable backend, so that an
    admin layer can edit it without a redeploy.

    Without a backend (or while it is failing) the last saved config is kept
    in-process; with nothing saved at all, defaults apply.
    """

    CONFIG_KEY = "bot:config"

    def __init__(self, backend: Optional[KeyValueBackend] = None):
        self.backend = backend
        self._local: Optional[BotConfig] = None
        self._lock = threading.Lock()

    def get(self) -> BotConfig:
        raw = None
        if self.backend is not None:
            try:
                raw = self.backend.get(self.CONFIG_KEY)
            except PersistenceFailure as e:
                logger.warning(f"Could not read bot config, using last known: {e}")

        if raw is not None:
            try:
                return BotConfig.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Stored bot config is invalid, using defaults: {e}")
                return BotConfig()

        with self._lock:
            return self._local or BotConfig()

    def save(self, config: BotConfig) -> bool:
        """
        Store a new config.

        Returns:
            False when only the in-process copy could be updated
        """
        with self._lock:
            self._local = config

        if self.backend is None:
            return True

        try:
            self.backend.set(self.CONFIG_KEY, config.model_dump(mode="json"))
        except PersistenceFailure as e:
            logger.warning(f"Could not persist bot config: {e}")
            return False
        return True
