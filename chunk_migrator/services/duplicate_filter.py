"""Duplicate detection against the target store."""

import logging
import threading
from typing import TYPE_CHECKING

from ..errors import LookupFailed
from ..models.migration import LookupPolicy
from ..models.record import RecordId

if TYPE_CHECKING:
    from ..loaders.base import BaseTargetStore

logger = logging.getLogger(__name__)


class DuplicateFilter:
    """
    Answers "is this record already migrated?" against the target store.

    Results are authoritative only at call time; nothing is locked or
    reserved. When a lookup fails the configured policy decides the answer:
    fail-open reports "not a duplicate" so one transient error does not stall
    the run, fail-closed reports "duplicate" so the record is skipped.
    """

    def __init__(self, store: "BaseTargetStore", policy: LookupPolicy = LookupPolicy.FAIL_OPEN):
        self.store = store
        self.policy = policy
        self._lookup_failures = 0
        self._lock = threading.Lock()

    @property
    def lookup_failures(self) -> int:
        """Number of failed lookups since creation."""
        with self._lock:
            return self._lookup_failures

    def exists_by_key(self, original_source_id: RecordId) -> bool:
        """Check whether a record with this source id was already written."""
        try:
            return self.store.exists_by_key(original_source_id)
        except LookupFailed as e:
            return self._on_failure("original_source_id", original_source_id, e)

    def exists_by_contact(self, email: str) -> bool:
        """Check whether a record with this email was already written."""
        try:
            return self.store.exists_by_contact(email)
        except LookupFailed as e:
            return self._on_failure("email", email, e)

    def _on_failure(self, field: str, value: object, error: LookupFailed) -> bool:
        with self._lock:
            self._lookup_failures += 1

        is_duplicate = self.policy == LookupPolicy.FAIL_CLOSED
        logger.error(
            f"Duplicate lookup by {field}={value!r} failed: {error}. "
            f"Treating as {'duplicate' if is_duplicate else 'not a duplicate'} ({self.policy.value})"
        )
        return is_duplicate
