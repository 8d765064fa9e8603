from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

#unified key store errors
class KeyStoreError(RuntimeError): ...
class KeyStoreTimeout(KeyStoreError): ...
class KeyStoreRetryable(KeyStoreError): ...

@dataclass(frozen=True)
class PublicKeyRecord:
    identity: str
    public_key_pem: Optional[str] = None #PEM SPKI, may be absent on the user record

class UserKeyStore(ABC):
    """Read-only view of the user records that carry public keys. Must be safe to call concurrently."""

    @abstractmethod
    async def lookup_public_key(self, identity: str) -> Optional[PublicKeyRecord]:
        raise NotImplementedError

    @abstractmethod
    async def health_check(self) -> bool:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
