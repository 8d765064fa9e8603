from typing import Optional, Dict, Any
from enum import Enum


class ErrorKind(Enum):
    INVALID_INPUT = "invalid_input"
    KEY_NOT_FOUND = "key_not_found"
    INVALID_KEY = "invalid_key"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


class EncryptionError(Exception):
    """Base class for every failure the encryption pipeline reports to callers."""
    kind: ErrorKind
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInputError(EncryptionError):
    kind = ErrorKind.INVALID_INPUT
    status_code = 400


class KeyNotFoundError(EncryptionError):
    kind = ErrorKind.KEY_NOT_FOUND
    status_code = 404


class InvalidKeyError(EncryptionError):
    kind = ErrorKind.INVALID_KEY
    status_code = 500


class PayloadTooLargeError(EncryptionError):
    kind = ErrorKind.PAYLOAD_TOO_LARGE
    status_code = 400

    def __init__(self, payload_bytes: int, max_bytes: int):
        super().__init__(
            f"Payload is {payload_bytes} bytes; the maximum for this key is {max_bytes} bytes",
            details={"payload_bytes": payload_bytes, "max_bytes": max_bytes},
        )
        self.payload_bytes = payload_bytes
        self.max_bytes = max_bytes


class UpstreamUnavailableError(EncryptionError):
    kind = ErrorKind.UPSTREAM_UNAVAILABLE
    status_code = 503
