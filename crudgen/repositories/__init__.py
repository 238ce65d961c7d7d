"""Repository layer for data access operations."""

from crudgen.repositories.base import BaseRepository
from crudgen.repositories.record_repository import RecordRepository, all_record_ids

__all__ = ["BaseRepository", "RecordRepository", "all_record_ids"]
