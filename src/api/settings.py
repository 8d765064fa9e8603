"""
Service configuration.

Settings are read once at startup from a YAML file (config/config.yaml unless
PUBENC_CONFIG points elsewhere) and validated before the app accepts requests.
The JWT secret can be supplied through PUBENC_JWT_SECRET so it stays out of
the config file.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, Union
from pathlib import Path
from dataclasses import dataclass, field
import os
import yaml

CONFIG_ENV_VAR = "PUBENC_CONFIG"
SECRET_ENV_VAR = "PUBENC_JWT_SECRET"
DEFAULT_CONFIG_PATH = Path(__file__).parents[2] / "config" / "config.yaml"

KEY_NOT_FOUND_STATUSES = {404, 409}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class AuthSettings:
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    identity_claim: str = "phone" #user records are keyed by phone number
    access_token_expire_minutes: int = 60


@dataclass(frozen=True)
class EncryptionSettings:
    key_not_found_status: int = 404


@dataclass(frozen=True)
class ServiceSettings:
    name: str = "Public Encrypt API"
    version: str = "1.0.0"
    log_level: str = "INFO"
    auth: AuthSettings = field(default_factory=AuthSettings)
    encryption: EncryptionSettings = field(default_factory=EncryptionSettings)
    keystore: Dict[str, Any] = field(default_factory=lambda: {"type": "memory"})
    config_dir: Optional[Path] = None


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return value


def load_settings(config_path: Optional[Union[Path, str]] = None) -> ServiceSettings:
    """
    Load and validate service settings.

    An explicit path (argument or PUBENC_CONFIG) must exist. When neither is
    given and the bundled config/config.yaml is missing, defaults are used.
    """
    explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
    path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    elif explicit:
        raise FileNotFoundError(f"Config not found: {path}")
    else:
        config = {}

    if not isinstance(config, dict):
        raise ValueError(f"Config root must be a mapping: {path}")

    service_cfg = _section(config, "service")
    auth_cfg = _section(config, "auth")
    encryption_cfg = _section(config, "encryption")
    logging_cfg = _section(config, "logging")
    keystore_cfg = _section(config, "keystore") or {"type": "memory"}

    secret_key = os.environ.get(SECRET_ENV_VAR) or auth_cfg.get("secret_key") or AuthSettings.secret_key
    auth = AuthSettings(
        secret_key=secret_key,
        algorithm=auth_cfg.get("algorithm", AuthSettings.algorithm),
        identity_claim=auth_cfg.get("identity_claim", AuthSettings.identity_claim),
        access_token_expire_minutes=int(auth_cfg.get("access_token_expire_minutes", AuthSettings.access_token_expire_minutes)),
    )

    status = int(encryption_cfg.get("key_not_found_status", EncryptionSettings.key_not_found_status))
    if status not in KEY_NOT_FOUND_STATUSES:
        raise ValueError(f"encryption.key_not_found_status must be one of {sorted(KEY_NOT_FOUND_STATUSES)}, got {status}")

    log_level = str(logging_cfg.get("level", ServiceSettings.log_level)).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Unknown logging.level: {log_level}")

    return ServiceSettings(
        name=service_cfg.get("name", ServiceSettings.name),
        version=str(service_cfg.get("version", ServiceSettings.version)),
        log_level=log_level,
        auth=auth,
        encryption=EncryptionSettings(key_not_found_status=status),
        keystore=keystore_cfg,
        config_dir=path.parent if path.exists() else None,
    )
