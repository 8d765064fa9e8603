from __future__ import annotations
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from .types import InvalidKeyError, PayloadTooLargeError

HASH_LEN = hashes.SHA512.digest_size  # 64


def oaep_padding() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA512()),
        algorithm=hashes.SHA512(),
        label=None,
    )


def load_rsa_public_key(public_pem: Union[str, bytes]) -> RSAPublicKey:
    """
    Parse a PEM-encoded SubjectPublicKeyInfo RSA public key.

    Raises InvalidKeyError for anything that is not a readable RSA public key,
    including well-formed keys of another algorithm.
    """
    if isinstance(public_pem, str):
        public_pem = public_pem.encode("utf-8")

    try:
        public_key = serialization.load_pem_public_key(public_pem)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidKeyError(f"Stored public key could not be parsed: {e}") from e

    if not isinstance(public_key, RSAPublicKey):
        raise InvalidKeyError(
            f"Stored public key is not an RSA key ({type(public_key).__name__})"
        )
    return public_key


def modulus_bytes(public_key: RSAPublicKey) -> int:
    return (public_key.key_size + 7) // 8


def oaep_max_plaintext_len(public_key: RSAPublicKey) -> int:
    # k - 2*hLen - 2; 4096-bit -> 512 - 128 - 2 = 382
    return max(0, modulus_bytes(public_key) - 2 * HASH_LEN - 2)


def oaep_encrypt(public_key: RSAPublicKey, plaintext: bytes) -> bytes:
    max_len = oaep_max_plaintext_len(public_key)
    if len(plaintext) > max_len:
        raise PayloadTooLargeError(payload_bytes=len(plaintext), max_bytes=max_len)
    return public_key.encrypt(plaintext, oaep_padding())
