"""Target stores and the chunk writer."""

from .base import BaseTargetStore
from .chunk_writer import ChunkWriter
from .mongo_store import MongoTargetStore

__all__ = [
    "BaseTargetStore",
    "ChunkWriter",
    "MongoTargetStore",
]
