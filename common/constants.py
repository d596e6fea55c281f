"""Project-wide constants (chunk size, timeouts, retry policy)."""

CHUNK_SIZE_BYTES: int = 24 * 1024 * 1024  # 24 MiB default chunk size

AES_KEY_SIZE_BYTES: int = 32
AES_BLOCK_SIZE_BYTES: int = 16

BACKEND_TIMEOUT_SECONDS: float = 60.0

# Longest rate-limit wait honored before a request is reported as unavailable
RATE_LIMIT_MAX_WAIT_SECONDS: float = 10.0

CLEANUP_MAX_ATTEMPTS: int = 3

ORPHAN_CLEANUP_INTERVAL_SECONDS: int = 3600
ORPHAN_MAX_ATTEMPTS: int = 10

DOWNLOAD_BUFFER_LIMIT_BYTES: int = 64 * 1024 * 1024  # larger files are streamed

DISCORD_API_BASE: str = "https://discord.com/api/v10"
