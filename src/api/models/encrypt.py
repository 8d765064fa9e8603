"""
API models for the public-key encryption endpoint.
"""

from pydantic import BaseModel, Field
from typing import Optional

# API Request Models
class EncryptRequest(BaseModel):
    """Plaintext to encrypt under the caller's stored public key."""
    # Optional here so a missing payload reaches the pipeline and reports invalid_input
    payload: Optional[str] = Field(None, description="UTF-8 plaintext to encrypt")

    class Config:
        json_schema_extra = {
            "example": {
                "payload": "hello world"
            }
        }
