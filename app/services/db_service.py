"""Pulseboard — Generic Database Service.

One CRUD implementation parameterized by a document type. Entity services
subclass it; none of them touch connections or sessions directly.

Queries are document-style filters::

    {"user_id": "…", "platform": "twitter"}              # equality
    {"date": {"$gte": start, "$lte": end}}               # range
    {"status": {"$in": ["pending", "approved"]}}         # membership

Failures are logged with the entity and operation name, then re-raised;
retrying is the caller's business.
"""

import operator
import uuid
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.errors import (
    DuplicateEntityError,
    InvalidIdError,
    PulseboardError,
    StorageError,
    ValidationError,
)
from app.core.logging import get_logger
from app.database import Database
from app.models.documents import utcnow

logger = get_logger("db_service")

DocT = TypeVar("DocT", bound=SQLModel)
R = TypeVar("R")

Query = Dict[str, Any]

OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
    "$in": lambda column, values: column.in_(list(values)),
}


def check_id(entity_id: Any) -> str:
    """Ids are 32-digit hex UUIDs."""
    if not isinstance(entity_id, str) or len(entity_id) != 32:
        raise InvalidIdError(str(entity_id))
    try:
        uuid.UUID(hex=entity_id)
    except ValueError:
        raise InvalidIdError(entity_id)
    return entity_id


class DatabaseService(Generic[DocT]):
    """Reusable CRUD engine for one document type."""

    def __init__(self, model: Type[DocT], model_name: str, database: Database):
        self.model = model
        self.model_name = model_name
        self.database = database

    # ── Plumbing ──

    def _column(self, field: str):
        if field not in self.model.model_fields:
            raise ValidationError(f"{self.model_name} has no field '{field}'")
        return getattr(self.model, field)

    def _where(self, query: Optional[Query]) -> List[Any]:
        clauses: List[Any] = []
        for field, condition in (query or {}).items():
            column = self._column(field)
            if isinstance(condition, dict) and condition and all(
                str(k).startswith("$") for k in condition
            ):
                for op, value in condition.items():
                    if op not in OPERATORS:
                        raise ValidationError(f"Unsupported query operator: {op}")
                    clauses.append(OPERATORS[op](column, value))
            elif condition is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == condition)
        return clauses

    def _order(self, order_by: Optional[str]) -> List[Any]:
        if not order_by:
            return []
        descending = order_by.startswith("-")
        column = self._column(order_by.lstrip("-"))
        return [column.desc() if descending else column.asc()]

    async def _run(self, operation: str, fn: Callable[[AsyncSession], Awaitable[R]]) -> R:
        try:
            async with self.database.session() as session:
                return await fn(session)
        except Exception as e:
            logger.error(
                f"Error in {operation} for {self.model_name}: {e}",
                extra={"entity": self.model_name, "operation": operation},
            )
            if isinstance(e, PulseboardError):
                raise
            if isinstance(e, IntegrityError):
                raise DuplicateEntityError(
                    f"{self.model_name} violates a uniqueness constraint"
                ) from e
            if isinstance(e, SQLAlchemyError):
                raise StorageError(f"{operation} {self.model_name} failed: {e}") from e
            raise

    # ── CRUD ──

    async def create(self, data: Dict[str, Any]) -> DocT:
        """Insert a new document and return it with id and timestamps."""

        async def op(session: AsyncSession) -> DocT:
            doc = self.model(**data)
            session.add(doc)
            await session.commit()
            await session.refresh(doc)
            return doc

        return await self._run("create", op)

    async def find(self, query: Optional[Query] = None, order_by: Optional[str] = None) -> List[DocT]:
        async def op(session: AsyncSession) -> List[DocT]:
            stmt = select(self.model).where(*self._where(query)).order_by(*self._order(order_by))
            result = await session.exec(stmt)
            return list(result.all())

        return await self._run("find", op)

    async def find_one(self, query: Query) -> Optional[DocT]:
        async def op(session: AsyncSession) -> Optional[DocT]:
            result = await session.exec(select(self.model).where(*self._where(query)))
            return result.first()

        return await self._run("find_one", op)

    async def find_by_id(self, entity_id: str) -> Optional[DocT]:
        async def op(session: AsyncSession) -> Optional[DocT]:
            return await session.get(self.model, check_id(entity_id))

        return await self._run("find_by_id", op)

    async def update_by_id(self, entity_id: str, patch: Dict[str, Any]) -> Optional[DocT]:
        """Partial update. Returns the post-update document, or None if absent."""

        async def op(session: AsyncSession) -> Optional[DocT]:
            doc = await session.get(self.model, check_id(entity_id))
            if doc is None:
                return None
            for field, value in patch.items():
                self._column(field)
                setattr(doc, field, value)
            if "updated_at" in self.model.model_fields:
                doc.updated_at = utcnow()
            session.add(doc)
            await session.commit()
            await session.refresh(doc)
            return doc

        return await self._run("update_by_id", op)

    async def delete_by_id(self, entity_id: str) -> Optional[DocT]:
        async def op(session: AsyncSession) -> Optional[DocT]:
            doc = await session.get(self.model, check_id(entity_id))
            if doc is None:
                return None
            await session.delete(doc)
            await session.commit()
            return doc

        return await self._run("delete_by_id", op)

    async def count(self, query: Optional[Query] = None) -> int:
        async def op(session: AsyncSession) -> int:
            stmt = select(func.count()).select_from(self.model).where(*self._where(query))
            result = await session.exec(stmt)
            return int(result.one())

        return await self._run("count", op)

    async def save(self, doc: DocT) -> DocT:
        """Persist a whole document, as loaded and mutated by the caller."""

        async def op(session: AsyncSession) -> DocT:
            if "updated_at" in self.model.model_fields:
                doc.updated_at = utcnow()
            merged = await session.merge(doc)
            await session.commit()
            await session.refresh(merged)
            return merged

        return await self._run("save", op)
