"""SolrKeeper I/O package.

File read/write operations only, no network calls in this layer.
"""

from solrkeeper.io.compression import compress_file
from solrkeeper.io.persistence import ensure_backup_dirs, file_checksum, save_json
from solrkeeper.io.profiles import ProfileStore
from solrkeeper.io.writers import (
    CsvWriter,
    FormatWriter,
    JsonWriter,
    WriterContext,
    XmlWriter,
    make_writer,
)

__all__ = [
    "compress_file",
    "ensure_backup_dirs",
    "file_checksum",
    "save_json",
    "ProfileStore",
    "CsvWriter",
    "FormatWriter",
    "JsonWriter",
    "WriterContext",
    "XmlWriter",
    "make_writer",
]
