# backend/utils/table_store.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import and_, update as sql_update
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from fastapi.concurrency import run_in_threadpool

from schemas.table_entity import TableEntity

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=TableEntity)

# Status codes treated as retry-safe by the retry policy
TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})

_KEY_FIELDS = {"partition_key", "row_key", "etag", "timestamp"}


class StorageRequestError(Exception):
    """A storage call failed; ``status`` follows HTTP conventions."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def is_transient(self) -> bool:
        return self.status in TRANSIENT_STATUSES


class EntityNotFound(StorageRequestError):
    def __init__(self, partition_key: str, row_key: str):
        super().__init__(404, f"Entity {partition_key}/{row_key} not found")
        self.partition_key = partition_key
        self.row_key = row_key


class EntityConflict(StorageRequestError):
    def __init__(self, partition_key: str, row_key: str):
        super().__init__(409, f"Entity {partition_key}/{row_key} already exists")


class VersionMismatch(StorageRequestError):
    def __init__(self, partition_key: str, row_key: str, expected: Optional[str]):
        super().__init__(412, f"Entity {partition_key}/{row_key} changed since version {expected}")
        self.expected = expected


def _new_etag() -> str:
    return uuid.uuid4().hex


class TableStore(Generic[E]):
    """Single-entity operations over one collection table.

    Every write assigns a fresh etag. ``update`` with an ``expected_version``
    is a compare-and-swap executed as one UPDATE statement, so a stale token
    is rejected by the database rather than by the caller. Database
    operational errors (locked, connection lost) surface as transient 503s.
    Session work runs in the threadpool so the event loop keeps serving
    other requests while a statement is in flight.
    """

    def __init__(self, session_factory: sessionmaker, model, schema: Type[E]):
        self._session_factory = session_factory
        self.model = model
        self.schema = schema

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def _session(self) -> Session:
        return self._session_factory()

    def _to_entity(self, row) -> E:
        entity = self.schema.model_validate(row)
        # SQLite drops the offset of DateTime(timezone=True) columns
        naive = {
            name: value.replace(tzinfo=timezone.utc)
            for name, value in entity
            if isinstance(value, datetime) and value.tzinfo is None
        }
        return entity.model_copy(update=naive) if naive else entity

    def _fields(self, entity: E) -> dict:
        return entity.model_dump(exclude=_KEY_FIELDS)

    def _transient(self, exc: Exception) -> StorageRequestError:
        logger.warning(f"Storage error on table {self.name}: {exc}")
        return StorageRequestError(503, f"Storage unavailable: {exc}")

    async def get(self, partition_key: str, row_key: str) -> E:
        return await run_in_threadpool(self._get, partition_key, row_key)

    async def insert(self, entity: E) -> E:
        return await run_in_threadpool(self._insert, entity)

    async def update(self, entity: E, expected_version: Optional[str]) -> E:
        """Write all fields of ``entity``.

        ``expected_version=None`` is an unconditional write; otherwise the
        stored etag must equal it or ``VersionMismatch`` is raised.
        """
        return await run_in_threadpool(self._update, entity, expected_version)

    async def delete(self, partition_key: str, row_key: str) -> None:
        await run_in_threadpool(self._delete, partition_key, row_key)

    async def query(self, partition_key: str, *criteria) -> List[E]:
        """All entities of a partition matching the SQLAlchemy ``criteria``."""
        return await run_in_threadpool(self._query, partition_key, *criteria)

    def _get(self, partition_key: str, row_key: str) -> E:
        try:
            with self._session() as db:
                row = db.get(self.model, (partition_key, row_key))
                if row is None:
                    raise EntityNotFound(partition_key, row_key)
                return self._to_entity(row)
        except (OperationalError, DBAPIError) as e:
            raise self._transient(e) from e

    def _insert(self, entity: E) -> E:
        row = self.model(
            partition_key=entity.partition_key,
            row_key=entity.row_key,
            etag=_new_etag(),
            timestamp=datetime.now(timezone.utc),
            **self._fields(entity),
        )
        try:
            with self._session() as db:
                db.add(row)
                db.commit()
                db.refresh(row)
                return self._to_entity(row)
        except IntegrityError as e:
            raise EntityConflict(entity.partition_key, entity.row_key) from e
        except (OperationalError, DBAPIError) as e:
            raise self._transient(e) from e

    def _update(self, entity: E, expected_version: Optional[str]) -> E:
        table = self.model.__table__
        key_match = and_(
            table.c.partition_key == entity.partition_key,
            table.c.row_key == entity.row_key,
        )
        condition = key_match if expected_version is None else and_(key_match, table.c.etag == expected_version)
        stmt = (
            sql_update(table)
            .where(condition)
            .values(etag=_new_etag(), timestamp=datetime.now(timezone.utc), **self._fields(entity))
        )
        try:
            with self._session() as db:
                result = db.execute(stmt)
                if result.rowcount == 0:
                    db.rollback()
                    if db.get(self.model, (entity.partition_key, entity.row_key)) is None:
                        raise EntityNotFound(entity.partition_key, entity.row_key)
                    raise VersionMismatch(entity.partition_key, entity.row_key, expected_version)
                db.commit()
                row = db.get(self.model, (entity.partition_key, entity.row_key))
                return self._to_entity(row)
        except IntegrityError as e:
            # CHECK constraints (negative stock, negative price)
            raise StorageRequestError(400, f"Rejected by storage: {e.orig}") from e
        except (OperationalError, DBAPIError) as e:
            raise self._transient(e) from e

    def _delete(self, partition_key: str, row_key: str) -> None:
        try:
            with self._session() as db:
                row = db.get(self.model, (partition_key, row_key))
                if row is None:
                    raise EntityNotFound(partition_key, row_key)
                db.delete(row)
                db.commit()
        except (OperationalError, DBAPIError) as e:
            raise self._transient(e) from e

    def _query(self, partition_key: str, *criteria) -> List[E]:
        try:
            with self._session() as db:
                rows = (
                    db.query(self.model)
                    .filter(self.model.partition_key == partition_key, *criteria)
                    .all()
                )
                return [self._to_entity(r) for r in rows]
        except (OperationalError, DBAPIError) as e:
            raise self._transient(e) from e
