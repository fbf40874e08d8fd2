"""Gzip recompression of finished export files.

The compressed artifact is streamed into a temporary file beside the source
and renamed into place only once it is complete. The source is deleted only
after that rename succeeds, so a failed compression never loses data.
"""

from __future__ import annotations

import gzip
import logging
import os
import tempfile
from pathlib import Path

from config.defaults import COMPRESSION_CHUNK_SIZE, COMPRESSION_LEVEL
from solrkeeper.errors import FileIOFailure

logger = logging.getLogger(__name__)


def compress_file(
    source: str | Path,
    chunk_size: int = COMPRESSION_CHUNK_SIZE,
    level: int = COMPRESSION_LEVEL,
) -> Path:
    """Gzip a closed file into ``<source>.gz`` and remove the source.

    Args:
        source: Path of the completed, closed export file.
        chunk_size: Bytes read per write.
        level: gzip compresslevel (1-9).

    Returns:
        Path of the ``.gz`` file.

    Raises:
        FileIOFailure: If reading, writing or renaming fails. The source file
            is untouched in that case and no partial ``.gz`` is left behind.
            Failing to delete the source afterwards is only logged; the
            returned ``.gz`` is still the backup.
    """
    source = Path(source)
    target = source.with_name(source.name + ".gz")

    tmp_path = None
    try:
        with open(source, "rb") as src, tempfile.NamedTemporaryFile(
            mode="wb",
            dir=source.parent,
            prefix=f".{source.name}.",
            suffix=".gz.tmp",
            delete=False,
        ) as tmp:
            tmp_path = tmp.name
            with gzip.GzipFile(
                filename=source.name, mode="wb", compresslevel=level, fileobj=tmp
            ) as gz:
                for chunk in iter(lambda: src.read(chunk_size), b""):
                    gz.write(chunk)
        os.replace(tmp_path, target)
    except OSError as exc:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        logger.error("Compression of %s failed; keeping uncompressed file: %s", source, exc)
        raise FileIOFailure(f"Cannot create compressed file for {source}: {exc}") from exc

    try:
        os.unlink(source)
    except OSError as exc:
        # The .gz is complete and in place; only the leftover source needs cleanup
        logger.warning("Compressed %s but could not remove %s: %s", target.name, source, exc)

    logger.info(
        "Compressed %s -> %s (%d bytes)", source.name, target.name, target.stat().st_size
    )
    return target
