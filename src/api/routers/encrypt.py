"""
Public-key encryption endpoint.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..models.common import APIError
from ..models.encrypt import EncryptRequest
from ..dependencies.auth import get_current_identity
from ..dependencies.keystore import get_encryption_pipeline
from src.pipeline.encryption.encryption import PublicEncryptionPipeline

router = APIRouter()

@router.post(
    "",
    response_class=PlainTextResponse,
    responses={
        400: {"model": APIError, "description": "Missing/empty payload or payload too large for the key"},
        401: {"description": "Missing or invalid bearer token"},
        404: {"model": APIError, "description": "No public key on record for the caller"},
        500: {"model": APIError, "description": "Stored public key is malformed"},
        503: {"model": APIError, "description": "User lookup unavailable, safe to retry"},
    },
)
async def public_encrypt(
    request: EncryptRequest,
    identity: str = Depends(get_current_identity),
    pipeline: PublicEncryptionPipeline = Depends(get_encryption_pipeline),
):
    """
    Encrypt the payload under the caller's stored RSA public key.

    Uses RSA-OAEP with SHA-512 and returns the ciphertext as a lowercase hex
    string. Failures are raised as EncryptionError and rendered as APIError
    by the app's exception handler.
    """
    ciphertext_hex = await pipeline.encrypt(identity, request.payload)
    return PlainTextResponse(ciphertext_hex, status_code=200)
