"""
In-memory user key store.

Holds identity -> public key PEM associations for development, single-node
deployments and tests. Records can be seeded from the `keystore.users` config
section, either inline (`public_key`) or from a PEM file (`public_key_file`).
"""

import threading
import logging
from typing import Dict, Optional, Any, Union
from pathlib import Path

from .base import UserKeyStore, PublicKeyRecord
from src.utils.pem_loader import read_pem

logger = logging.getLogger(__name__)


class InMemoryKeyStore(UserKeyStore):
    """
    Thread-safe in-memory key storage.

    In production the user records live in the user service (see
    DirectoryKeyStore); in-memory is fine for development and tests.
    """

    def __init__(self, users: Optional[Dict[str, Any]] = None, base_dir: Optional[Path] = None):
        self._keys: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()
        self._lookups = 0

        for identity, entry in (users or {}).items():
            self.put(str(identity), self._resolve_entry(identity, entry, base_dir))
        if self._keys:
            logger.info(f"seeded in-memory key store with {len(self._keys)} users")

    @staticmethod
    def _resolve_entry(identity: Any, entry: Union[str, Dict[str, Any], None], base_dir: Optional[Path]) -> Optional[str]:
        """Accept a bare PEM string, a mapping with public_key / public_key_file, or None (user without a key)."""
        if entry is None or isinstance(entry, str):
            return entry
        if not isinstance(entry, dict):
            raise ValueError(f"User '{identity}' must map to a PEM string or a mapping")

        if entry.get("public_key_file"):
            path = Path(entry["public_key_file"])
            if base_dir and not path.is_absolute():
                path = base_dir / path
            return read_pem(path)
        return entry.get("public_key")

    def put(self, identity: str, public_key_pem: Optional[str]) -> None:
        """Create or replace the key on record for an identity."""
        with self._lock:
            self._keys[identity] = public_key_pem

    def remove(self, identity: str) -> bool:
        with self._lock:
            if identity not in self._keys:
                return False
            del self._keys[identity]
            return True

    async def lookup_public_key(self, identity: str) -> Optional[PublicKeyRecord]:
        with self._lock:
            self._lookups += 1
            if identity not in self._keys:
                return None
            return PublicKeyRecord(identity=identity, public_key_pem=self._keys[identity])

    async def health_check(self) -> bool:
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "users": len(self._keys),
                "users_with_keys": sum(1 for pem in self._keys.values() if pem),
                "lookups": self._lookups,
            }
