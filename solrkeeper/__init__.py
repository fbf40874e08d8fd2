"""SolrKeeper — streaming backups of Solr cores.

Public API surface:
    - BackupSettings: Process-level configuration
    - BackupRequest: What to export
    - BackupOrchestrator / run_backup: Execute one backup run
"""

__version__ = "1.0.0"

from config.settings import BackupSettings
from solrkeeper.models.backup import BackupRequest, BackupResult
from solrkeeper.pipeline import BackupOrchestrator, run_backup

__all__ = [
    "__version__",
    "BackupSettings",
    "BackupRequest",
    "BackupResult",
    "BackupOrchestrator",
    "run_backup",
]
