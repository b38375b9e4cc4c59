"""
Customer Migration Engine

Chunk-oriented batch migration of customer records from a relational
database to a MongoDB collection.

Supports:
- Bounded-memory streaming from SQL databases and CSV seed files
- Normalization and validation of every record in flight
- Duplicate suppression by source id and email
- Per-chunk commit with skip, duplicate and error accounting
- Single-flight runs with status and summary reporting
"""

__version__ = "0.1.0"
