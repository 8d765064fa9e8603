"""
Key store and pipeline dependencies.

The key store manager is created once in the app lifespan; each request gets a
lightweight PublicEncryptionPipeline bound to the configured store.
"""

from fastapi import Depends, Request

from src.api.settings import ServiceSettings
from src.keystore.manager import KeyStoreManager
from src.pipeline.encryption.encryption import PublicEncryptionPipeline


def get_settings(request: Request) -> ServiceSettings:
    """FastAPI dependency to get the settings the app was created with."""
    return request.app.state.settings


def get_key_store_manager(request: Request) -> KeyStoreManager:
    """FastAPI dependency to get the key store manager from app state."""
    return request.app.state.keystore_manager


def get_encryption_pipeline(
    keystore_manager: KeyStoreManager = Depends(get_key_store_manager),
) -> PublicEncryptionPipeline:
    return PublicEncryptionPipeline(keystore_manager.store)
