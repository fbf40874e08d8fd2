"""SolrKeeper configuration package."""

from config.defaults import (
    BACKUP_ROOT,
    DEFAULT_BATCH_SIZE,
    DEFAULT_ENGINE,
    DEFAULT_FIELDS,
    DEFAULT_FORMAT,
    DEFAULT_QUERY,
    SUPPORTED_FORMATS,
    VERSION_FIELD,
)
from config.settings import BackupSettings

__all__ = [
    "BackupSettings",
    "BACKUP_ROOT",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_ENGINE",
    "DEFAULT_FIELDS",
    "DEFAULT_FORMAT",
    "DEFAULT_QUERY",
    "SUPPORTED_FORMATS",
    "VERSION_FIELD",
]
