"""Configuration settings for the vault server."""

import base64
import binascii
import os

from common.constants import (
    AES_KEY_SIZE_BYTES,
    BACKEND_TIMEOUT_SECONDS,
    CHUNK_SIZE_BYTES,
    DISCORD_API_BASE as DEFAULT_DISCORD_API_BASE,
    DOWNLOAD_BUFFER_LIMIT_BYTES,
    ORPHAN_CLEANUP_INTERVAL_SECONDS,
)
from vault.exceptions import ConfigurationError


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


DATABASE_PATH = os.environ.get("VAULT_DATABASE_PATH", "./data/catalog.db")

VAULT_HOST = os.environ.get("VAULT_HOST", "0.0.0.0")

VAULT_PORT = int(os.environ.get("VAULT_PORT", "8080"))

CHUNK_SIZE = _env_positive_int("VAULT_CHUNK_SIZE_BYTES", CHUNK_SIZE_BYTES)

STAGING_DIR = os.environ.get("VAULT_STAGING_DIR", "./data/staging")

# Empty string disables sidecar files
SIDECAR_DIR = os.environ.get("VAULT_SIDECAR_DIR", "./data/sidecars")

UPLOAD_CONCURRENCY = _env_positive_int("VAULT_UPLOAD_CONCURRENCY", 1)

BATCH_CONCURRENCY = _env_positive_int("VAULT_BATCH_CONCURRENCY", 1)

# Downloads up to this size are reconstructed fully before the response starts
DOWNLOAD_BUFFER_LIMIT = _env_positive_int("VAULT_DOWNLOAD_BUFFER_BYTES", DOWNLOAD_BUFFER_LIMIT_BYTES)

BACKEND_TIMEOUT = float(os.environ.get("VAULT_BACKEND_TIMEOUT_SECONDS", str(BACKEND_TIMEOUT_SECONDS)))

COMPENSATE_FAILED_UPLOADS = _env_bool("VAULT_COMPENSATE_FAILED_UPLOADS", True)

ORPHAN_CLEANUP_INTERVAL = _env_positive_int(
    "VAULT_ORPHAN_CLEANUP_INTERVAL_SECONDS", ORPHAN_CLEANUP_INTERVAL_SECONDS
)

DISCORD_API_BASE = os.environ.get("DISCORD_API_BASE", DEFAULT_DISCORD_API_BASE)


def get_encryption_key() -> bytes:
    """
    Load the chunk encryption key from VAULT_ENCRYPTION_KEY.

    The value is base64 (standard or urlsafe) of exactly 32 random bytes,
    e.g. the output of `openssl rand -base64 32`.

    Raises:
        ConfigurationError: If the key is missing or malformed
    """
    raw = os.environ.get("VAULT_ENCRYPTION_KEY")
    if not raw:
        raise ConfigurationError("VAULT_ENCRYPTION_KEY is not set")

    raw = raw.strip()
    try:
        if "-" in raw or "_" in raw:
            key = base64.urlsafe_b64decode(raw)
        else:
            key = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        raise ConfigurationError("VAULT_ENCRYPTION_KEY is not valid base64")

    if len(key) != AES_KEY_SIZE_BYTES:
        raise ConfigurationError(
            f"VAULT_ENCRYPTION_KEY must decode to {AES_KEY_SIZE_BYTES} bytes, got {len(key)}"
        )
    return key


def get_discord_credentials() -> tuple[str, str]:
    """
    Return (bot_token, channel_id) for the backend session.

    Raises:
        ConfigurationError: If either value is missing
    """
    token = os.environ.get("DISCORD_BOT_TOKEN")
    channel_id = os.environ.get("DISCORD_CHANNEL_ID")
    if not token:
        raise ConfigurationError("DISCORD_BOT_TOKEN is not set")
    if not channel_id:
        raise ConfigurationError("DISCORD_CHANNEL_ID is not set")
    return token, channel_id
