from __future__ import annotations
from typing import Optional, Dict, Any
from pathlib import Path
from enum import Enum
import inspect
import logging

from .base import UserKeyStore
from .memory import InMemoryKeyStore
from .directory import DirectoryKeyStore

logger = logging.getLogger(__name__)


class StoreType(Enum):
    MEMORY = "memory"
    DIRECTORY = "directory" #user service over http


class KeyStoreManager:
    def __init__(self, config: Optional[Dict[str, Any]] = None, base_dir: Optional[Path] = None):
        self.config = self._validate_config(config or {"type": StoreType.MEMORY.value})
        self.base_dir = base_dir #resolves relative public_key_file entries
        self._store: Optional[UserKeyStore] = None #lazy load

    @staticmethod
    def _validate_config(config: Dict[str, Any]) -> Dict:
        if not isinstance(config, dict):
            raise ValueError("Config 'keystore' must be a mapping")

        store_type = config.get("type", StoreType.MEMORY.value)
        if store_type not in {t.value for t in StoreType}:
            raise ValueError(f"Unknown keystore type: {store_type}")

        if store_type == StoreType.DIRECTORY.value:
            settings = config.get("settings") or {}
            if not isinstance(settings, dict):
                raise ValueError("Keystore 'settings' must be a mapping")
            if "base_url" not in settings:
                raise ValueError("Keystore 'directory' missing settings.base_url")
            accepted = set(inspect.signature(DirectoryKeyStore.__init__).parameters) - {"self", "transport"}
            unknown = sorted(set(settings) - accepted)
            if unknown:
                raise ValueError(f"Keystore 'directory' has unknown settings: {', '.join(unknown)}")

        users = config.get("users")
        if users is not None and not isinstance(users, dict):
            raise ValueError("Keystore 'users' must be a mapping of identity -> key")

        return {**config, "type": store_type}

    @property
    def store_type(self) -> str:
        return self.config["type"]

    @property
    def store(self) -> UserKeyStore:
        """Access the configured key store, building it on first use"""
        if self._store is None:
            if self.store_type == StoreType.DIRECTORY.value:
                self._store = DirectoryKeyStore(**self.config["settings"])
            else:
                self._store = InMemoryKeyStore(self.config.get("users"), base_dir=self.base_dir)
            logger.info(f"initialized key store: {self.store_type}")
        return self._store

    async def health_check(self) -> bool:
        try:
            return await self.store.health_check()
        except Exception as e:
            logger.error(f"Key store health check failed: {e}")
            return False

    async def cleanup(self):
        if self._store is None:
            return
        try:
            await self._store.aclose()
        except Exception as e:
            logger.error(f"Cleanup failed for key store {self.store_type}: {e}")
        self._store = None
