"""SolrKeeper — BackupSettings and environment-based configuration loading.

Paths and timeouts flow through BackupSettings. Values not given explicitly
come from environment variables (optionally via a .env file), then from
config.defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from config.defaults import (
    BACKUP_ROOT,
    COMPRESSION_CHUNK_SIZE,
    COMPRESSION_LEVEL,
    CONNECT_TIMEOUT,
    DEFAULT_LOG_LEVEL,
    ENGINES_CONFIG_PATH,
    PROGRESS_LOG_EVERY_BATCHES,
    REQUEST_TIMEOUT,
)

# Load .env file if present; silently skip if missing
load_dotenv()


@dataclass
class BackupSettings:
    """Runtime settings shared by every backup run.

    Unlike BackupRequest, nothing here describes *what* to export; these are
    the process-level knobs (where profiles and backups live, timeouts, chunk
    size, log level).
    """

    # ── Locations ──────────────────────────────────────────────────────────────
    engines_config_path: str = field(
        default_factory=lambda: os.getenv("SOLRKEEPER_ENGINES_CONFIG", ENGINES_CONFIG_PATH)
    )
    backup_root: str = field(
        default_factory=lambda: os.getenv("SOLRKEEPER_BACKUP_ROOT", BACKUP_ROOT)
    )

    # ── HTTP ───────────────────────────────────────────────────────────────────
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("SOLRKEEPER_REQUEST_TIMEOUT", REQUEST_TIMEOUT))
    )
    connect_timeout: float = field(
        default_factory=lambda: float(os.getenv("SOLRKEEPER_CONNECT_TIMEOUT", CONNECT_TIMEOUT))
    )

    # ── Output ─────────────────────────────────────────────────────────────────
    compression_chunk_size: int = COMPRESSION_CHUNK_SIZE
    compression_level: int = COMPRESSION_LEVEL
    progress_every: int = PROGRESS_LOG_EVERY_BATCHES

    # ── Logging ────────────────────────────────────────────────────────────────
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL))

    def __post_init__(self) -> None:
        if self.request_timeout <= 0 or self.connect_timeout <= 0:
            raise ValueError(
                f"Timeouts must be positive, got connect={self.connect_timeout} "
                f"read={self.request_timeout}"
            )
        if self.compression_chunk_size <= 0:
            raise ValueError(
                f"compression_chunk_size must be positive, got {self.compression_chunk_size}"
            )
        if not 1 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be 1..9, got {self.compression_level}")
        if self.progress_every <= 0:
            raise ValueError(f"progress_every must be positive, got {self.progress_every}")
