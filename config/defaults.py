"""SolrKeeper — All default values and configuration constants.

All tuneable values live here. Never hard-code magic numbers in source files.
Import constants from this module; override via BackupSettings at runtime.
"""

# ── Export command defaults ────────────────────────────────────────────────────
# Engine profile used when none is named on the command line
DEFAULT_ENGINE: str = "local"

# Export encoding used when --format is omitted
DEFAULT_FORMAT: str = "json"

# Match-all query
DEFAULT_QUERY: str = "*:*"

# Documents requested per cursor step (Solr `rows`)
DEFAULT_BATCH_SIZE: int = 1000

# "*" means every stored field (minus the version field when excluded)
DEFAULT_FIELDS: str = "*"

# Encodings the export pipeline can write
SUPPORTED_FORMATS: tuple = ("json", "csv", "xml")

# ── Solr wire protocol ─────────────────────────────────────────────────────────
# Path segment between host:port and the core name
SOLR_PATH_ROOT: str = "solr"

# Opening cursor mark for a fresh pagination run
CURSOR_MARK_START: str = "*"

# Cursor pagination requires a sort on the unique key
CURSOR_SORT: str = "id asc"

# Solr optimistic-concurrency field stripped when version exclusion is on
VERSION_FIELD: str = "_version_"

# Field list sent when every field except the version field is wanted
FIELD_LIST_WITHOUT_VERSION: str = "*, -_version_"

# HTTP read timeout for select calls (seconds)
REQUEST_TIMEOUT: int = 30

# HTTP connect timeout for select calls (seconds)
CONNECT_TIMEOUT: int = 10

# ── Compression ────────────────────────────────────────────────────────────────
# Bytes read from the source file per gzip write
COMPRESSION_CHUNK_SIZE: int = 1024 * 1024

# gzip compresslevel (9 = maximum)
COMPRESSION_LEVEL: int = 9

# ── Progress reporting ─────────────────────────────────────────────────────────
# Log the running document count every N batches
PROGRESS_LOG_EVERY_BATCHES: int = 10

# ── Output paths ──────────────────────────────────────────────────────────────
# Root directory holding backups/{format}/ and backups/metadata/
BACKUP_ROOT: str = "backups"

# Subdirectory of BACKUP_ROOT holding run metadata records
METADATA_DIR_NAME: str = "metadata"

# Engine profile store (JSON object keyed by engine name)
ENGINES_CONFIG_PATH: str = "solr_engines.json"

# Timestamp embedded in generated file names
TIMESTAMP_FORMAT: str = "%Y%m%d_%H%M%S"

# ── Logging ────────────────────────────────────────────────────────────────────
DEFAULT_LOG_LEVEL: str = "INFO"
