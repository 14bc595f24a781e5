"""Repository implementations of the metadata store ports."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from functools import wraps
from typing import Any, Generic, ParamSpec, TypeVar

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from musicindex.domain.entities import (
    AlbumMetadata,
    AlbumRecord,
    AudioMetadata,
    AudioRecord,
)
from musicindex.domain.exceptions import StoreError
from musicindex.domain.ports import IAlbumRepository, IAudioRepository, IMetadataStore
from musicindex.infrastructure.persistence.database import Database
from musicindex.infrastructure.persistence.models import (
    AlbumModel,
    AudioModel,
    ensure_utc_aware,
)
from musicindex.infrastructure.persistence.retry import LockStats, with_db_retry

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")
RecordT = TypeVar("RecordT", AudioRecord, AlbumRecord)
ModelT = TypeVar("ModelT", AudioModel, AlbumModel)

# SQLite's default host-parameter limit is 999 on older builds
_IN_CHUNK_SIZE = 500


def store_operation(
    operation: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Translate SQLAlchemy failures (after lock retries) into StoreError."""

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                path_id = args[1] if len(args) > 1 and isinstance(args[1], str) else None
                raise StoreError(operation, path_id, str(e)) from e

        return wrapper

    return decorator


class _DocumentRepository(Generic[RecordT, ModelT]):
    """Shared keyed-document access for audio and album tables."""

    model: type[ModelT]
    metadata_type: type[BaseModel]
    record_type: type[RecordT]

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def lock_stats(self) -> LockStats:
        return self._db.lock_stats

    def _to_record(self, row: ModelT) -> RecordT:
        return self.record_type(
            path_id=row.path_id,
            modified_at=ensure_utc_aware(row.modified_at),
            filename=row.filename,
            metadata=self.metadata_type.model_validate(row.metadata_doc or {}),
        )

    def _to_columns(self, changes: dict[str, Any]) -> dict[str, Any]:
        columns: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "metadata":
                columns["metadata_doc"] = (
                    value.to_document() if isinstance(value, BaseModel) else dict(value)
                )
            elif key in ("modified_at", "filename"):
                columns[key] = value
            else:
                raise ValueError(f"Unknown record field: {key}")
        return columns

    @store_operation("find_one")
    @with_db_retry()
    async def find_one(self, path_id: str) -> RecordT | None:
        async with self._db.session_scope() as session:
            row = await session.get(self.model, path_id)
            return self._to_record(row) if row is not None else None

    @store_operation("find_many")
    @with_db_retry()
    async def find_many(self, path_ids: Iterable[str]) -> list[RecordT]:
        ids = list(dict.fromkeys(path_ids))
        if not ids:
            return []
        found: dict[str, RecordT] = {}
        async with self._db.session_scope() as session:
            for start in range(0, len(ids), _IN_CHUNK_SIZE):
                chunk = ids[start : start + _IN_CHUNK_SIZE]
                stmt = select(self.model).where(self.model.path_id.in_(chunk))
                result = await session.execute(stmt)
                for row in result.scalars():
                    found[row.path_id] = self._to_record(row)
        # Same order as requested, missing ids left out
        return [found[i] for i in ids if i in found]

    @store_operation("find_all")
    @with_db_retry()
    async def find_all(self) -> list[RecordT]:
        async with self._db.session_scope() as session:
            result = await session.execute(select(self.model).order_by(self.model.path_id))
            return [self._to_record(row) for row in result.scalars()]

    @store_operation("insert")
    @with_db_retry()
    async def insert(self, record: RecordT) -> None:
        async with self._db.session_scope() as session:
            session.add(
                self.model(
                    path_id=record.path_id,
                    modified_at=record.modified_at,
                    filename=record.filename,
                    metadata_doc=record.metadata.to_document(),
                )
            )

    @store_operation("update")
    @with_db_retry()
    async def update(self, path_id: str, changes: dict[str, Any]) -> None:
        columns = self._to_columns(changes)
        if not columns:
            return
        async with self._db.session_scope() as session:
            stmt = (
                update(self.model)
                .where(self.model.path_id == path_id)
                .values(**columns)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise StoreError("update", path_id, "record does not exist")


class AudioRepository(_DocumentRepository[AudioRecord, AudioModel], IAudioRepository):
    """Per-track records in the library_audio table."""

    model = AudioModel
    metadata_type = AudioMetadata
    record_type = AudioRecord

    @store_operation("find_all_ids")
    @with_db_retry()
    async def find_all_ids(self) -> set[str]:
        async with self._db.session_scope() as session:
            result = await session.execute(select(AudioModel.path_id))
            return set(result.scalars())


class AlbumRepository(_DocumentRepository[AlbumRecord, AlbumModel], IAlbumRepository):
    """Album aggregates in the library_albums table."""

    model = AlbumModel
    metadata_type = AlbumMetadata
    record_type = AlbumRecord


class SqlMetadataStore(IMetadataStore):
    """Metadata store backed by SQLAlchemy (SQLite by default)."""

    def __init__(self, db: Database) -> None:
        self.db = db
        self.audio = AudioRepository(db)
        self.albums = AlbumRepository(db)

    async def close(self) -> None:
        await self.db.close()
