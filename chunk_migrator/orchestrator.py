"""Migration orchestrator - drives the chunked read, transform and write loop."""

import json
import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from contextlib import closing
from datetime import datetime, timezone
from itertools import islice
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .errors import (
    AlreadyRunning,
    ConfigurationError,
    MigrationError,
    RunNotFound,
    WriteFailed,
)
from .extractors.base import BaseExtractor
from .extractors.csv_extractor import CSVExtractor
from .extractors.sql_extractor import SQLExtractor
from .loaders.chunk_writer import ChunkWriter
from .loaders.mongo_store import MongoTargetStore
from .models.migration import (
    MigrationConfig,
    MigrationRun,
    RunHandle,
    RunState,
    RunStatistics,
)
from .models.record import SkipReason, SourceRecord, TransformResult
from .services.duplicate_filter import DuplicateFilter
from .services.transformer import CustomerTransformer

logger = logging.getLogger(__name__)

MIGRATION_TYPE = "sql-to-mongodb"
MAX_RUN_HISTORY = 100


class MigrationOrchestrator:
    """
    Orchestrates customer migration runs.

    Handles:
    - Single-flight run start (at most one run is RUNNING per orchestrator)
    - Chunked streaming: read up to chunk_size records, transform, write,
      then move on, so at most one chunk is held in memory
    - Chunk-boundary commit of run statistics
    - Run status and summary reporting
    """

    def __init__(
        self,
        extractor: BaseExtractor,
        transformer: CustomerTransformer,
        writer: ChunkWriter,
        config: Optional[MigrationConfig] = None,
        max_history: int = MAX_RUN_HISTORY
    ):
        """
        Initialize the orchestrator.

        Args:
            extractor: Record reader for the source store
            transformer: Source to target record transformer
            writer: Chunk writer for the target store
            config: Migration configuration
            max_history: Number of runs kept for status queries; the oldest
                finished runs are forgotten first
        """
        self.extractor = extractor
        self.transformer = transformer
        self.writer = writer
        self.config = config or MigrationConfig()

        errors = self.config.validate()
        if errors:
            raise ConfigurationError("; ".join(errors))

        self._lock = threading.Lock()
        self._active_run_id: Optional[str] = None
        self._runs: "OrderedDict[str, MigrationRun]" = OrderedDict()
        self.max_history = max(1, max_history)
        self._last_token_ms = 0

    @property
    def chunk_size(self) -> int:
        return self.config.chunk_size

    # Run control

    def start(self, background: bool = False) -> RunHandle:
        """
        Start a migration run.

        Args:
            background: If True, run on a daemon thread and return at once;
                otherwise return after the run reaches a terminal state

        Returns:
            RunHandle for the new run

        Raises:
            AlreadyRunning: If another run is active
        """
        with self._lock:
            if self._active_run_id is not None:
                logger.warning(
                    f"Refusing to start a migration while run {self._active_run_id} is running"
                )
                raise AlreadyRunning(self._active_run_id)

            run = MigrationRun(name=self.config.name, job_parameters=self._create_job_parameters())
            run.mark_running()
            self._runs[run.id] = run
            self._active_run_id = run.id
            self._evict_finished_runs()

        logger.info(f"=== STARTING CUSTOMER MIGRATION RUN {run.id} ===")
        logger.info(f"Job parameters: {run.job_parameters}")

        handle = RunHandle(
            run_id=run.id,
            state=RunState.RUNNING,
            job_parameters=dict(run.job_parameters),
            started_at=run.started_at,
        )

        if background:
            handle.thread = threading.Thread(
                target=self._execute,
                args=(run,),
                name=f"migration-{run.id}",
                daemon=True,
            )
            handle.thread.start()
        else:
            self._execute(run)
            handle.state = run.state

        return handle

    def _evict_finished_runs(self) -> None:
        """Drop the oldest terminal runs beyond max_history. Caller holds the lock."""
        excess = len(self._runs) - self.max_history
        for run_id in list(self._runs):
            if excess <= 0:
                break
            if run_id != self._active_run_id:
                del self._runs[run_id]
                excess -= 1

    def is_running(self) -> bool:
        """Check whether a run is currently active."""
        with self._lock:
            return self._active_run_id is not None

    @property
    def active_run_id(self) -> Optional[str]:
        with self._lock:
            return self._active_run_id

    def get_run(self, run_id: str) -> MigrationRun:
        """Get a run by id."""
        with self._lock:
            run = self._runs.get(run_id)
        if run is None:
            raise RunNotFound(run_id)
        return run

    def status(self, run_id: str) -> Dict[str, Any]:
        """State, statistics and timing of a run."""
        return self.get_run(run_id).to_dict()

    def summary(self, run_id: str) -> Dict[str, Any]:
        """Executive summary of a run."""
        return self.get_run(run_id).to_summary()

    def list_runs(self) -> List[Dict[str, Any]]:
        """Status of every run started by this orchestrator, oldest first."""
        with self._lock:
            runs = list(self._runs.values())
        return [run.to_dict() for run in runs]

    # Execution

    def _execute(self, run: MigrationRun) -> None:
        """Run the read, transform and write loop until the source is exhausted."""
        try:
            self.writer.store.ensure_indexes()

            with closing(self.extractor.stream()) as records:
                if self.config.transform_workers > 1:
                    with ThreadPoolExecutor(
                        max_workers=self.config.transform_workers,
                        thread_name_prefix="transform",
                    ) as pool:
                        self._run_chunks(run, records, pool)
                else:
                    self._run_chunks(run, records, None)

            run.mark_completed()
            stats = run.snapshot_statistics()
            logger.info(
                f"=== MIGRATION RUN {run.id} COMPLETED: read={stats.records_read} "
                f"written={stats.records_written} skipped={stats.records_skipped} "
                f"rejected={stats.records_rejected} duplicates={stats.duplicates_suppressed} "
                f"success_rate={stats.success_rate:.2f}% ==="
            )

        except WriteFailed as e:
            run.record_rollback()
            run.mark_failed(e)
            logger.error(f"Migration run {run.id} failed writing a chunk: {e}")

        except MigrationError as e:
            run.mark_failed(e)
            logger.error(f"Migration run {run.id} failed: {e}")

        except Exception as e:
            run.mark_failed(e)
            logger.exception(f"Migration run {run.id} failed unexpectedly: {e}")

        finally:
            with self._lock:
                if self._active_run_id == run.id:
                    self._active_run_id = None
            self._save_report(run)

    def _run_chunks(
        self,
        run: MigrationRun,
        records: Iterable[SourceRecord],
        pool: Optional[ThreadPoolExecutor]
    ) -> None:
        for chunk_number, source_chunk in enumerate(self._iter_chunks(records), start=1):
            logger.debug(f"Processing chunk {chunk_number} ({len(source_chunk)} records)")
            self._process_chunk(run, chunk_number, source_chunk, pool)

    def _iter_chunks(self, records: Iterable[SourceRecord]) -> Iterator[List[SourceRecord]]:
        """Group the record stream into lists of at most chunk_size records."""
        iterator = iter(records)
        while True:
            chunk = list(islice(iterator, self.chunk_size))
            if not chunk:
                return
            yield chunk

    def _process_chunk(
        self,
        run: MigrationRun,
        chunk_number: int,
        source_chunk: List[SourceRecord],
        pool: Optional[ThreadPoolExecutor]
    ) -> None:
        """Transform and write one chunk, then commit its counters to the run."""
        failures_before = self._lookup_failures()

        if pool is not None:
            results: List[TransformResult] = list(pool.map(self.transformer.transform, source_chunk))
        else:
            results = [self.transformer.transform(record) for record in source_chunk]

        delta = RunStatistics(records_read=len(source_chunk))
        candidates = []
        for result in results:
            if result.record is not None:
                candidates.append(result.record)
            elif result.skip_reason == SkipReason.DUPLICATE_CONTACT:
                delta.duplicates_suppressed += 1
            else:
                delta.records_skipped += 1

        # Raises WriteFailed; the chunk's counters are then discarded
        outcome = self.writer.write(candidates)

        delta.records_written = outcome.inserted
        delta.duplicates_suppressed += outcome.duplicates
        delta.records_rejected = outcome.errors
        delta.lookup_failures = self._lookup_failures() - failures_before

        summary = outcome.to_dict()
        summary["chunk"] = chunk_number
        summary["read"] = len(source_chunk)
        run.commit_chunk(delta, summary)

    def _lookup_failures(self) -> int:
        filters = {
            id(f): f
            for f in (self.transformer.duplicate_filter, self.writer.duplicate_filter)
            if f is not None
        }
        return sum(f.lookup_failures for f in filters.values())

    def _create_job_parameters(self) -> Dict[str, Any]:
        """Build run parameters around a strictly increasing timestamp token."""
        now_ms = int(time.time() * 1000)
        if now_ms <= self._last_token_ms:
            now_ms = self._last_token_ms + 1
        self._last_token_ms = now_ms

        moment = datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)
        return {
            "execution.timestamp": f"{moment.strftime('%Y%m%d-%H%M%S')}-{now_ms % 1000:03d}",
            "execution.user": self.config.execution_user,
            "migration.type": MIGRATION_TYPE,
            "execution.time": now_ms,
            "chunk.size": self.chunk_size,
        }

    def _save_report(self, run: MigrationRun) -> None:
        """Save the run report when a reports directory is configured."""
        if not self.config.reports_dir:
            return

        directory = Path(self.config.reports_dir)
        filepath = directory / f"migration_report_{run.job_parameters['execution.timestamp']}.json"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w") as f:
                json.dump(
                    {"status": run.to_dict(), "summary": run.to_summary()},
                    f,
                    indent=2,
                    default=str,
                )
            logger.info(f"Saved migration report to {filepath}")
        except OSError as e:
            logger.error(f"Could not save migration report to {filepath}: {e}")


def build_orchestrator(config: MigrationConfig) -> MigrationOrchestrator:
    """
    Wire the concrete reader, filter, transformer and writer for a config.

    Args:
        config: Migration configuration

    Returns:
        MigrationOrchestrator ready to start runs
    """
    errors = config.validate()
    if errors:
        raise ConfigurationError("; ".join(errors))

    if config.seed_csv:
        extractor: BaseExtractor = CSVExtractor(config.seed_csv)
    else:
        extractor = SQLExtractor.from_url(
            config.source_url,
            table=config.source_table,
            fetch_size=config.fetch_size,
        )

    store = MongoTargetStore.from_url(
        config.target_url,
        database=config.target_database,
        collection=config.target_collection,
        write_timeout=config.write_timeout_seconds,
    )
    duplicate_filter = DuplicateFilter(store, policy=config.lookup_policy)

    return MigrationOrchestrator(
        extractor=extractor,
        transformer=CustomerTransformer(duplicate_filter),
        writer=ChunkWriter(
            store,
            duplicate_filter=duplicate_filter,
            error_rate_threshold=config.error_rate_threshold,
        ),
        config=config,
    )
