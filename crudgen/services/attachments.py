"""
Attachment storage bound to record identity.

Files live under ``<uploads>/<entity singular>/<record id>/`` and are named
``<field>_<epoch ms>_<index><ext>``. The record identity is allocated before
anything is written, so a record is persisted once with its final paths.
"""

import asyncio
import os
import shutil
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any
from uuid import UUID

import aiofiles
import aiofiles.os
from starlette.datastructures import UploadFile

from crudgen.exceptions.domain import StorageError, UploadError
from crudgen.models.field import FieldDescriptor
from crudgen.settings import settings
from crudgen.utils.logger import logger


# Directories younger than this may belong to an insert still in flight
ORPHAN_MIN_AGE_SECONDS = 3600.0


def _newest_mtime(directory: Path) -> float:
    mtimes = [directory.stat().st_mtime]
    mtimes.extend(entry.stat().st_mtime for entry in directory.rglob("*"))
    return max(mtimes)


@dataclass
class AttachmentResult:
    """Paths stored per field, plus the failures that did not abort the request."""

    paths: dict[str, list[str]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def file_extension(filename: str | None, content_type: str | None) -> str:
    """Extension from the file name, else from the mimetype subtype."""
    suffix = PurePosixPath(os.path.basename(filename or "")).suffix.lower()
    if suffix:
        return suffix
    if content_type and "/" in content_type:
        subtype = content_type.split("/", 1)[1].split(";", 1)[0].strip().lower()
        if subtype:
            return f".{subtype}"
    return ""


def canonical_name(field_name: str, timestamp_ms: int, index: int, extension: str) -> str:
    return f"{field_name}_{timestamp_ms}_{index}{extension}"


def apply_removals(current: Any, removals: Iterable[str]) -> Any:
    """Subtract removed paths from a field value.

    A list keeps its surviving order; a single path is cleared when removed.
    """
    removed = set(removals)
    if not removed:
        return current
    if isinstance(current, list):
        return [path for path in current if path not in removed]
    if current in removed:
        return None
    return current


def merge_uploads(current: Any, new_paths: list[str], expects_array: bool) -> Any:
    """Append new paths to an array field, or replace a single-path field."""
    if not new_paths:
        return current
    if expects_array:
        existing = current if isinstance(current, list) else ([current] if current else [])
        return [*existing, *new_paths]
    return new_paths[0]


class AttachmentManager:
    """Stores, removes and sweeps attachment files under the uploads root."""

    def __init__(
        self,
        storage_root: Path | None = None,
        uploads_dir: str | None = None,
        chunk_size: int | None = None,
    ):
        self.storage_root = Path(storage_root or settings.storage_root)
        self.uploads_dir = uploads_dir or settings.uploads_dir
        self.chunk_size = chunk_size or settings.upload_chunk_size

    @property
    def uploads_root(self) -> Path:
        return self.storage_root / self.uploads_dir

    def relative_dir(self, singular: str, record_id: UUID) -> PurePosixPath:
        """Record directory as stored in field values."""
        return PurePosixPath(self.uploads_dir, singular, str(record_id))

    def record_dir(self, singular: str, record_id: UUID) -> Path:
        return self.storage_root / self.relative_dir(singular, record_id)

    def resolve(self, stored_path: str) -> Path:
        """Absolute location of a stored path value."""
        return self.storage_root / stored_path

    async def _write(self, upload: UploadFile, target: Path) -> None:
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        await upload.seek(0)
        async with aiofiles.open(target, "wb") as out:
            while chunk := await upload.read(self.chunk_size):
                await out.write(chunk)

    async def store_field(
        self,
        singular: str,
        record_id: UUID,
        field_name: str,
        uploads: list[UploadFile],
        result: AttachmentResult,
    ) -> list[str]:
        """Write uploads for one field, one at a time.

        A failed file is reported in ``result.warnings`` and skipped; the
        others are still written.
        """
        timestamp_ms = int(time.time() * 1000)
        relative_dir = self.relative_dir(singular, record_id)
        stored: list[str] = []

        for index, upload in enumerate(uploads):
            extension = file_extension(upload.filename, upload.content_type)
            name = canonical_name(field_name, timestamp_ms, index, extension)
            # Never overwrite a file stored earlier in the same millisecond
            while (self.storage_root / relative_dir / name).exists():
                timestamp_ms += 1
                name = canonical_name(field_name, timestamp_ms, index, extension)
            target = self.storage_root / relative_dir / name
            try:
                await self._write(upload, target)
            except OSError as e:
                error = UploadError(field_name, upload.filename, str(e))
                logger.warning(str(error))
                result.warnings.append(str(error))
                await asyncio.to_thread(target.unlink, missing_ok=True)
                continue
            stored.append(str(relative_dir / name))
            logger.debug(f"Stored {upload.filename} as {relative_dir / name}")

        result.paths[field_name] = stored
        return stored

    async def store(
        self,
        singular: str,
        record_id: UUID,
        descriptors: Mapping[str, FieldDescriptor],
        files: Mapping[str, list[UploadFile]],
    ) -> AttachmentResult:
        """Write the uploads of every file field present in ``files``."""
        result = AttachmentResult()
        for field_name, descriptor in descriptors.items():
            uploads = files.get(field_name) or []
            if not descriptor.is_file or not uploads:
                continue
            if not descriptor.expects_array and len(uploads) > 1:
                message = f"{field_name} accepts a single file; extra uploads were ignored"
                logger.warning(message)
                result.warnings.append(message)
                uploads = uploads[:1]
            await self.store_field(singular, record_id, field_name, uploads, result)
        return result

    async def unlink_removed(self, singular: str, record_id: UUID, paths: Iterable[str]) -> None:
        """Delete removed files that live inside the record's own directory."""
        record_dir = self.record_dir(singular, record_id).resolve()
        for stored_path in paths:
            target = self.resolve(stored_path).resolve()
            if not target.is_relative_to(record_dir):
                logger.warning(f"Refusing to delete {stored_path}: outside {record_dir}")
                continue
            try:
                await aiofiles.os.remove(target)
            except FileNotFoundError:
                logger.debug(f"Removed attachment {stored_path} was already gone")

    async def purge(self, singular: str, record_id: UUID) -> None:
        """Remove the record's directory with every attachment in it.

        Raises:
            StorageError: If the directory exists but cannot be removed
        """
        record_dir = self.record_dir(singular, record_id)
        if not record_dir.exists():
            return
        try:
            await asyncio.to_thread(shutil.rmtree, record_dir)
        except OSError as e:
            raise StorageError(f"Failed to remove {record_dir}: {e}") from e
        logger.info(f"Removed attachment directory {record_dir}")

    async def sweep_orphans(
        self, known_ids: set[UUID], min_age: float = ORPHAN_MIN_AGE_SECONDS
    ) -> list[Path]:
        """Remove record directories whose record no longer exists.

        Directories whose name is not a record identity are left alone, and so
        are directories touched within the last ``min_age`` seconds: an insert
        writes its files before the row is persisted.

        Returns:
            The removed directories
        """
        if not self.uploads_root.is_dir():
            return []

        removed: list[Path] = []
        cutoff = time.time() - min_age
        for kind_dir in sorted(self.uploads_root.iterdir()):
            if not kind_dir.is_dir():
                continue
            for record_dir in sorted(kind_dir.iterdir()):
                try:
                    record_id = UUID(record_dir.name)
                except ValueError:
                    continue
                if not record_dir.is_dir() or record_id in known_ids:
                    continue
                if _newest_mtime(record_dir) > cutoff:
                    logger.debug(f"Skipping recently written {record_dir}")
                    continue
                await asyncio.to_thread(shutil.rmtree, record_dir)
                logger.info(f"Swept orphaned attachment directory {record_dir}")
                removed.append(record_dir)
        return removed
