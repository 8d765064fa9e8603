from typing import Optional
import logging

from src.keystore.base import UserKeyStore, PublicKeyRecord, KeyStoreError, KeyStoreTimeout
from .oaep import load_rsa_public_key, oaep_encrypt
from .types import InvalidInputError, KeyNotFoundError, UpstreamUnavailableError, EncryptionError

logger = logging.getLogger(__name__)


class PublicEncryptionPipeline:
    """
    Encrypts a caller's payload under the RSA public key stored on their user record.

    validate payload -> look up key -> parse PEM -> RSA-OAEP (SHA-512) -> hex.
    Any failing step raises an EncryptionError and the remaining steps are skipped.
    OAEP is randomized, so the same payload encrypts to different ciphertext each call.
    """

    def __init__(self, key_store: UserKeyStore):
        self.key_store = key_store

    async def _lookup(self, identity: str) -> PublicKeyRecord:
        try:
            record = await self.key_store.lookup_public_key(identity)
        except KeyStoreTimeout as e:
            raise UpstreamUnavailableError(f"User lookup timed out: {e}") from e
        except KeyStoreError as e:
            raise UpstreamUnavailableError(f"User lookup failed: {e}") from e

        if record is None or not record.public_key_pem:
            raise KeyNotFoundError(
                "No public key on record for the authenticated user",
                details={"identity": identity},
            )
        return record

    async def encrypt(self, identity: str, payload: Optional[str]) -> str:
        """
        Returns:
            The ciphertext as a lowercase hex string, two characters per modulus byte.
        """
        if not payload:
            raise InvalidInputError("Must provide valid plain text data to be encrypted")
        try:
            plaintext = payload.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidInputError("Payload is not valid UTF-8 text") from e

        try:
            record = await self._lookup(identity)
            public_key = load_rsa_public_key(record.public_key_pem)
            ciphertext = oaep_encrypt(public_key, plaintext)
        except EncryptionError as e:
            logger.warning(f"encrypt failed for {identity}: {e.kind.value}")
            raise

        logger.info(f"encrypted {len(ciphertext)}-byte block for {identity} (rsa-{public_key.key_size})")
        return ciphertext.hex()
