"""SolrKeeper backup orchestrator.

Sequences one export run end to end:

  CONFIGURING_ENGINE  resolve the engine profile (no network yet)
  PREPARING_OUTPUT    create backups/{format}/ and backups/metadata/, open the file
  PAGINATING          cursor through the core, streaming every batch to the writer
  FINALIZING          close the JSON/XML envelope
  COMPRESSING         optional gzip of the finished file
  WRITING_METADATA    backups/metadata/backup_{engine}_{timestamp}_meta.json

Configuration and request errors raise before any output exists. Once the
output file is open, every failure still produces a metadata record with the
partial counts; the error is carried on BackupResult and re-raised by
BackupResult.raise_for_status().

Usage:
    from config.settings import BackupSettings
    from solrkeeper.models.backup import BackupRequest
    from solrkeeper.pipeline import run_backup

    result = run_backup(BackupRequest(engine="local", format="csv"))
    result.raise_for_status()
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from config.defaults import TIMESTAMP_FORMAT
from config.settings import BackupSettings
from solrkeeper.clients.solr_client import SolrClient
from solrkeeper.errors import (
    FileIOFailure,
    InvalidResponseShape,
    NetworkFailure,
    SolrKeeperError,
)
from solrkeeper.io.compression import compress_file
from solrkeeper.io.persistence import ensure_backup_dirs, file_checksum, save_json
from solrkeeper.io.profiles import ProfileStore
from solrkeeper.io.writers import FormatWriter, WriterContext, make_writer
from solrkeeper.models.backup import (
    BackupMetadata,
    BackupRequest,
    BackupResult,
    BackupStats,
    EngineConnection,
    PhaseRecord,
    RunPhase,
)
from solrkeeper.pagination import CursorPaginator, SearchClient
from solrkeeper.utils.logging_utils import RunContextAdapter, get_run_logger

logger = logging.getLogger(__name__)

ClientFactory = Callable[[EngineConnection], SearchClient]


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def output_filename(request: BackupRequest, engine: str, timestamp: str) -> str:
    """Name of the export file inside backups/{format}/.

    A custom name gets the format extension appended when it lacks it.
    """
    if request.output_override:
        filename = request.output_override
        if not filename.endswith(f".{request.format}"):
            filename += f".{request.format}"
        return filename
    return f"backup_{engine}_{timestamp}.{request.format}"


def _as_backup_error(exc: Exception, action: str) -> Exception:
    """Translate OSError and UnicodeError into FileIOFailure; leave the rest as is."""
    if isinstance(exc, (OSError, UnicodeError)):
        failure = FileIOFailure(f"Cannot {action}: {exc}")
        failure.__cause__ = exc
        return failure
    return exc


class BackupOrchestrator:
    """Runs backups against engines from one profile store.

    Args:
        settings: Paths, timeouts and chunk sizes. Defaults to BackupSettings().
        profile_store: Engine profile lookup. Defaults to the settings' file.
        client_factory: Builds the search client for a resolved engine.
            Defaults to SolrClient with the settings' timeouts.
    """

    def __init__(
        self,
        settings: Optional[BackupSettings] = None,
        profile_store: Optional[ProfileStore] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.settings = settings or BackupSettings()
        self.profile_store = profile_store or ProfileStore(self.settings.engines_config_path)
        self.client_factory = client_factory or self._default_client_factory

    def _default_client_factory(self, connection: EngineConnection) -> SolrClient:
        return SolrClient(
            connection,
            request_timeout=self.settings.request_timeout,
            connect_timeout=self.settings.connect_timeout,
        )

    # ── Phase bookkeeping ──────────────────────────────────────────────────────

    @staticmethod
    def _phase_start(
        phase_log: List[PhaseRecord], log: RunContextAdapter, phase: str
    ) -> PhaseRecord:
        log.set_phase(phase)
        record = PhaseRecord(phase_name=phase, start_time=datetime.now(timezone.utc))
        phase_log.append(record)
        return record

    @staticmethod
    def _phase_end(record: PhaseRecord, status: str = "OK") -> None:
        record.end_time = datetime.now(timezone.utc)
        record.status = status

    # ── Run ────────────────────────────────────────────────────────────────────

    def run(self, request: BackupRequest) -> BackupResult:
        """Execute one backup run.

        Args:
            request: Validated backup request.

        Returns:
            BackupResult. ``status`` is RunPhase.DONE or RunPhase.FAILED; on
            failure ``error`` holds the exception and the metadata record
            still exists.

        Raises:
            ConfigNotFound, EngineNotFound: Before any output is created.
            FileIOFailure: If the output file cannot be created.
        """
        stats = BackupStats()
        phase_log: List[PhaseRecord] = []
        timestamp = stats.started_at.strftime(TIMESTAMP_FORMAT)
        run_id = f"backup_{request.engine}_{timestamp}"
        log = get_run_logger(__name__, run_id)

        # ── Configure engine ───────────────────────────────────────────────────
        record = self._phase_start(phase_log, log, RunPhase.CONFIGURING_ENGINE)
        try:
            connection = self.profile_store.resolve(request.engine)
        except SolrKeeperError as exc:
            self._phase_end(record, RunPhase.FAILED)
            log.error("%s", exc)
            raise
        self._phase_end(record)
        log.info("Using Solr engine: %s", connection.name)
        log.info("Host: %s", connection.describe())

        # ── Prepare output ─────────────────────────────────────────────────────
        record = self._phase_start(phase_log, log, RunPhase.PREPARING_OUTPUT)
        try:
            dirs = ensure_backup_dirs(self.settings.backup_root)
            output_path = dirs[request.format] / output_filename(request, connection.name, timestamp)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            sink = open(
                output_path, "w", encoding="utf-8", errors="backslashreplace", newline=""
            )
        except OSError as exc:
            self._phase_end(record, RunPhase.FAILED)
            raise FileIOFailure(f"Cannot create output file: {exc}") from exc
        self._phase_end(record)
        metadata_path = dirs["metadata"] / f"backup_{connection.name}_{timestamp}_meta.json"

        log.info("Starting backup in %s format...", request.format)
        log.info("Query: %s", request.query)
        log.info("Batch size: %d", request.batch_size)

        context = WriterContext(
            engine=connection.name,
            query=request.query,
            format=request.format,
            batch_size=request.batch_size,
            fields_excluded=request.fields_excluded,
            timestamp=_iso(stats.started_at),
        )

        error: Optional[Exception] = None
        final_path: Path = output_path
        compressed = False

        # ── Paginate + finalize (the file handle is owned here) ────────────────
        try:
            with sink:
                writer = make_writer(request.format, sink, context)
                error = self._paginate(request, connection, writer, stats, phase_log, log)
                if error is None:
                    record = self._phase_start(phase_log, log, RunPhase.FINALIZING)
                    try:
                        writer.finalize()
                        self._phase_end(record)
                    except OSError as exc:
                        self._phase_end(record, RunPhase.FAILED)
                        error = _as_backup_error(exc, f"finalize {output_path}")
                        stats.add_error(str(error))
        except OSError as exc:
            # Buffered bytes failed to reach disk on close
            if error is None:
                error = _as_backup_error(exc, f"close {output_path}")
                stats.add_error(str(error))

        # ── Compress ───────────────────────────────────────────────────────────
        if error is None and request.compress:
            record = self._phase_start(phase_log, log, RunPhase.COMPRESSING)
            try:
                final_path = compress_file(
                    output_path,
                    chunk_size=self.settings.compression_chunk_size,
                    level=self.settings.compression_level,
                )
                compressed = True
                self._phase_end(record)
            except FileIOFailure as exc:
                self._phase_end(record, RunPhase.FAILED)
                error = exc
                stats.add_error(str(exc))

        # ── Metadata ───────────────────────────────────────────────────────────
        status = RunPhase.DONE if error is None else RunPhase.FAILED
        metadata = self._build_metadata(
            request, connection, final_path, compressed, stats, phase_log, status
        )
        record = self._phase_start(phase_log, log, RunPhase.WRITING_METADATA)
        written_metadata: Optional[Path] = metadata_path
        try:
            save_json(metadata, metadata_path)
            self._phase_end(record)
        except (OSError, TypeError, ValueError) as exc:
            self._phase_end(record, RunPhase.FAILED)
            written_metadata = None
            log.error("Could not write metadata record %s: %s", metadata_path, exc)
            if error is None:
                error = _as_backup_error(exc, f"write metadata {metadata_path}")
                status = RunPhase.FAILED

        result = BackupResult(
            run_id=run_id,
            output_path=final_path,
            metadata_path=written_metadata,
            stats=stats,
            metadata=metadata,
            phase_log=phase_log,
            status=status,
            error=error,
        )
        log.set_phase(status)
        self._log_summary(result, request, log)
        return result

    def _paginate(
        self,
        request: BackupRequest,
        connection: EngineConnection,
        writer: FormatWriter,
        stats: BackupStats,
        phase_log: List[PhaseRecord],
        log: RunContextAdapter,
    ) -> Optional[Exception]:
        """Drive the paginator into the writer. Returns the failure, if any."""
        record = self._phase_start(phase_log, log, RunPhase.PAGINATING)
        client = None
        try:
            writer.write_metadata_header()
            client = self.client_factory(connection)
            paginator = CursorPaginator(
                client, request.query, request.batch_size, request.field_list_param
            )
            for docs in paginator:
                for doc in docs:
                    writer.write_document(doc)
                stats.record_batch(len(docs))
                if stats.batches_processed % self.settings.progress_every == 0:
                    log.info("Documents processed: %d", stats.documents_processed)
        except Exception as exc:
            self._phase_end(record, RunPhase.FAILED)
            error = _as_backup_error(exc, "write output file")
            if isinstance(error, (NetworkFailure, InvalidResponseShape)):
                stats.add_error(f"Batch request failed: {error}")
            else:
                stats.add_error(str(error))
            log.error(
                "Backup aborted after %d documents in %d batches: %s",
                stats.documents_processed,
                stats.batches_processed,
                error,
            )
            return error
        finally:
            if client is not None and hasattr(client, "close"):
                client.close()

        self._phase_end(record)
        return None

    def _build_metadata(
        self,
        request: BackupRequest,
        connection: EngineConnection,
        final_path: Path,
        compressed: bool,
        stats: BackupStats,
        phase_log: List[PhaseRecord],
        status: str,
    ) -> BackupMetadata:
        size_bytes = final_path.stat().st_size if final_path.exists() else 0
        return BackupMetadata(
            backup_file=str(final_path),
            engine=connection.name,
            format=request.format,
            query=request.query,
            total_documents=stats.documents_processed,
            batches_processed=stats.batches_processed,
            execution_time_ms=stats.elapsed_ms(),
            compressed=compressed,
            fields_excluded=request.fields_excluded,
            created_at=_iso(datetime.now(timezone.utc)),
            errors=list(stats.errors),
            status="OK" if status == RunPhase.DONE else "FAILED",
            size_bytes=size_bytes,
            checksum=file_checksum(final_path),
            phases=[r.to_dict() for r in phase_log],
        )

    @staticmethod
    def _log_summary(result: BackupResult, request: BackupRequest, log: RunContextAdapter) -> None:
        # Callers print the summary themselves; the log keeps it for --log-level DEBUG
        for line in summary_lines(result, request):
            log.debug("%s", line)


def summary_lines(result: BackupResult, request: BackupRequest) -> List[str]:
    """Human-readable run summary, one line per fact."""
    stats = result.stats
    elapsed = result.metadata.execution_time_ms if result.metadata else stats.elapsed_ms()
    lines = [
        "Backup completed successfully!" if result.succeeded else "Backup failed!",
        f"  Format: {request.format}",
        f"  Total documents: {stats.documents_processed}",
        f"  Batches processed: {stats.batches_processed}",
        f"  Execution time: {elapsed}ms",
    ]
    if result.metadata and result.metadata.compressed:
        lines.append("  Compressed: Yes")
    if stats.errors:
        lines.append(f"  Errors encountered: {len(stats.errors)}")
    lines.append(f"  Output file: {result.output_path}")
    if result.metadata_path is not None:
        lines.append(f"  Metadata file: {result.metadata_path}")
    return lines


def run_backup(
    request: BackupRequest,
    settings: Optional[BackupSettings] = None,
) -> BackupResult:
    """Convenience wrapper: run one backup with default collaborators.

    Args:
        request: Validated backup request.
        settings: Optional settings (default: environment-derived).

    Returns:
        BackupResult for the run.
    """
    return BackupOrchestrator(settings=settings).run(request)
