"""MongoDB target store."""

import logging
from typing import List, Optional, Sequence

import pymongo
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .base import BaseTargetStore
from ..errors import LookupFailed, WriteFailed
from ..models.record import RecordId, TargetRecord

logger = logging.getLogger(__name__)


class MongoTargetStore(BaseTargetStore):
    """
    Stores migrated customers as documents in a MongoDB collection.

    original_source_id carries a unique index, so the database itself
    rejects a second copy of a source row even if two writers race past
    the duplicate checks.
    """

    def __init__(
        self,
        collection: Collection,
        write_timeout: Optional[float] = None
    ):
        """
        Initialize the store.

        Args:
            collection: Target collection
            write_timeout: Seconds allowed for one bulk insert (None for no limit)
        """
        self.collection = collection
        self.write_timeout = write_timeout

    @classmethod
    def from_url(
        cls,
        url: str,
        database: str,
        collection: str,
        write_timeout: Optional[float] = None
    ) -> "MongoTargetStore":
        """Create a store from a MongoDB connection URL."""
        client: MongoClient = MongoClient(url, tz_aware=True)
        return cls(client[database][collection], write_timeout=write_timeout)

    def ensure_indexes(self) -> None:
        self.collection.create_index(
            [("original_source_id", ASCENDING)],
            unique=True,
            name="original_source_id_unique",
        )
        self.collection.create_index([("email", ASCENDING)], name="email")
        logger.info(f"Ensured indexes on {self.collection.name}")

    def exists_by_key(self, original_source_id: RecordId) -> bool:
        return self._exists({"original_source_id": original_source_id})

    def exists_by_contact(self, email: str) -> bool:
        return self._exists({"email": email})

    def _exists(self, query: dict) -> bool:
        try:
            return self.collection.find_one(query, projection={"_id": 1}) is not None
        except PyMongoError as e:
            raise LookupFailed(f"Lookup {query} on {self.collection.name} failed: {e}", key=query) from e

    def insert_many(self, records: Sequence[TargetRecord]) -> List[str]:
        documents = [r.to_document() for r in records]
        try:
            with pymongo.timeout(self.write_timeout):
                result = self.collection.insert_many(documents, ordered=True)
        except PyMongoError as e:
            raise WriteFailed(
                f"Failed to write {len(documents)} customers to {self.collection.name}: {e}",
                chunk_size=len(documents),
            ) from e
        return [str(inserted_id) for inserted_id in result.inserted_ids]

    def validate_connection(self) -> bool:
        try:
            self.collection.database.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"Cannot reach target MongoDB: {e}")
            return False
