"""Base interface for target document stores."""

from abc import ABC, abstractmethod
from typing import List, Sequence
import logging

from ..models.record import RecordId, TargetRecord

logger = logging.getLogger(__name__)


class BaseTargetStore(ABC):
    """
    Base class for target stores.

    Stores answer duplicate lookups and persist chunks of records in one
    bulk operation. Lookup failures are raised as LookupFailed and bulk
    insert failures as WriteFailed.
    """

    @abstractmethod
    def exists_by_key(self, original_source_id: RecordId) -> bool:
        """Check if a record with this source id exists."""
        pass

    @abstractmethod
    def exists_by_contact(self, email: str) -> bool:
        """Check if a record with this email exists."""
        pass

    @abstractmethod
    def insert_many(self, records: Sequence[TargetRecord]) -> List[str]:
        """
        Insert records in one bulk operation.

        Args:
            records: Records to insert

        Returns:
            Target-assigned ids, in input order
        """
        pass

    def ensure_indexes(self) -> None:
        """Create the indexes lookups and uniqueness rely on."""
        pass

    def validate_connection(self) -> bool:
        """Validate the connection to the target store."""
        return True
