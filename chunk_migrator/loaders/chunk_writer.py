"""Chunk writer - persists one chunk of records as a single bulk insert."""

import logging
from typing import List, Optional, Sequence, Set

from .base import BaseTargetStore
from ..errors import DuplicateSkipped, ValidationRejected, WriteFailed
from ..models.migration import utcnow
from ..models.record import RecordId, TargetRecord, WriteOutcome
from ..services.duplicate_filter import DuplicateFilter
from ..services.validator import RecordValidator

logger = logging.getLogger(__name__)


class ChunkWriter:
    """
    Writes chunks of transformed records to the target store.

    For every chunk:
    - duplicates by original_source_id are re-checked and excluded
    - records failing required-field validation are excluded
    - the survivors are persisted with one bulk insert

    Excluded records are counted, never raised. A failure of the bulk
    insert is raised as WriteFailed and fails the whole chunk.
    """

    def __init__(
        self,
        store: BaseTargetStore,
        duplicate_filter: Optional[DuplicateFilter] = None,
        validator: Optional[RecordValidator] = None,
        error_rate_threshold: float = 10.0
    ):
        """
        Initialize the writer.

        Args:
            store: Target store receiving the bulk inserts
            duplicate_filter: Filter for the per-record key re-check
                (defaults to one over the same store)
            validator: Required-field validator
            error_rate_threshold: Error percentage above which a chunk is
                flagged with a warning
        """
        self.store = store
        self.duplicate_filter = duplicate_filter or DuplicateFilter(store)
        self.validator = validator or RecordValidator()
        self.error_rate_threshold = error_rate_threshold

    def write(self, chunk: Sequence[TargetRecord]) -> WriteOutcome:
        """
        Write a chunk of records.

        Args:
            chunk: Records to write

        Returns:
            WriteOutcome with per-chunk counts

        Raises:
            WriteFailed: If the bulk insert fails
        """
        outcome = WriteOutcome(received=len(chunk), started_at=utcnow())
        logger.info(f"Writing chunk of {len(chunk)} customers")

        if not chunk:
            logger.warning("Empty chunk received, nothing to write")
            outcome.completed_at = utcnow()
            return outcome

        to_insert: List[TargetRecord] = []
        seen_keys: Set[RecordId] = set()

        for record in chunk:
            try:
                self._check_candidate(record, seen_keys)
                to_insert.append(record)
                seen_keys.add(record.original_source_id)

            except DuplicateSkipped as e:
                logger.debug(str(e))
                outcome.duplicates += 1

            except ValidationRejected as e:
                logger.warning(str(e))
                outcome.errors += 1
                outcome.rejected.append({
                    "original_source_id": record.original_source_id,
                    "error": str(e),
                })

            except Exception as e:
                logger.error(
                    f"Error processing customer {record.original_source_id}: {e}",
                    exc_info=True,
                )
                outcome.errors += 1
                outcome.rejected.append({
                    "original_source_id": record.original_source_id,
                    "error": str(e),
                })

        if to_insert:
            try:
                inserted_ids = self.store.insert_many(to_insert)
            except WriteFailed:
                logger.error(f"Bulk insert of {len(to_insert)} customers failed", exc_info=True)
                raise
            except Exception as e:
                logger.error(f"Bulk insert of {len(to_insert)} customers failed: {e}", exc_info=True)
                raise WriteFailed(
                    f"Failed to write {len(to_insert)} customers: {e}",
                    chunk_size=len(to_insert),
                ) from e

            for record, target_id in zip(to_insert, inserted_ids):
                record.id = target_id
                logger.debug(
                    f"Saved customer id={target_id} original_source_id={record.original_source_id} "
                    f"email={record.email}"
                )
            outcome.inserted = len(to_insert)
            outcome.inserted_ids = list(inserted_ids)

        outcome.completed_at = utcnow()
        self._log_summary(outcome)
        return outcome

    def _check_candidate(self, record: TargetRecord, seen_keys: Set[RecordId]) -> None:
        """Raise DuplicateSkipped or ValidationRejected if the record cannot be inserted."""
        key = record.original_source_id
        if key in seen_keys or self.duplicate_filter.exists_by_key(key):
            raise DuplicateSkipped(f"Customer with original_source_id {key} already exists, skipping")

        errors = self.validator.validate_record(record)
        if errors:
            fields = ", ".join(e.field for e in errors)
            raise ValidationRejected(
                f"Customer with original_source_id {key} is not valid for insertion ({fields})"
            )

    def _log_summary(self, outcome: WriteOutcome) -> None:
        logger.info(
            f"Chunk written: received={outcome.received} inserted={outcome.inserted} "
            f"duplicates={outcome.duplicates} errors={outcome.errors}"
        )
        if outcome.errors and outcome.error_rate > self.error_rate_threshold:
            outcome.high_error_rate = True
            logger.warning(
                f"HIGH ERROR RATE: {outcome.error_rate:.2f}% of the chunk's records had errors"
            )
