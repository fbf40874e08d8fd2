"""Backup tree and metadata-file helpers.

The backup root holds one directory per export format plus ``metadata/``:

    backups/
      json/  csv/  xml/
      metadata/backup_<engine>_<timestamp>_meta.json

Metadata records are written atomically so a reader never sees half a file.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable

from config.defaults import METADATA_DIR_NAME, SUPPORTED_FORMATS

logger = logging.getLogger(__name__)

_CHECKSUM_CHUNK = 64 * 1024


def _to_jsonable(obj: Any) -> Any:
    """json.dumps ``default`` hook for dataclass records and paths."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"{type(obj).__name__} is not JSON serializable")


def save_json(data: Any, path: str | Path, indent: int = 2) -> None:
    """Write data as JSON to path via a sibling temp file and os.replace.

    Args:
        data: JSON-compatible value; dataclasses and Path objects allowed.
        path: Destination. Missing parent directories are created.
        indent: Indentation of the written JSON.

    Raises:
        TypeError: If data holds a value JSON cannot represent.
        OSError: If the temp file cannot be written or renamed. The
            destination is left as it was and the temp file is removed.
    """
    path = Path(path)
    text = json.dumps(data, indent=indent, ensure_ascii=False, default=_to_jsonable)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(text)
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.debug("Wrote %s (%d chars)", path, len(text))


def file_checksum(path: str | Path) -> str:
    """SHA-256 hex digest of path, or "" when it cannot be read."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHECKSUM_CHUNK), b""):
                digest.update(chunk)
    except OSError as exc:
        logger.warning("Cannot checksum %s: %s", path, exc)
        return ""
    return digest.hexdigest()


def ensure_backup_dirs(
    backup_root: str | Path,
    formats: Iterable[str] = SUPPORTED_FORMATS,
) -> Dict[str, Path]:
    """Create the per-format and metadata directories under backup_root.

    Returns:
        Mapping of each format name, plus "metadata", to its directory.
    """
    root = Path(backup_root)
    dirs = {name: root / name for name in [*formats, METADATA_DIR_NAME]}
    for directory in dirs.values():
        directory.mkdir(parents=True, exist_ok=True)
    return dirs
