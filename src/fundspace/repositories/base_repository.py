"""Shared persistence helpers for the table repositories."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Generic, List, Optional, TypeVar

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from ..core.exceptions import BaseFundspaceException, DatabaseError, ResourceNotFoundError
from ..models.database import Base

T = TypeVar('T', bound=Base)


class BaseRepository(Generic[T], ABC):
    """Lookups and writes shared by every table.

    Repositories only flush; committing or rolling back belongs to the
    caller's ``DatabaseManager.transaction()`` block.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.model_class = self.get_model_class()

    @abstractmethod
    def get_model_class(self) -> type[T]:
        """Return the model class this repository handles."""

    @property
    def _pk(self):
        return self.model_class.__mapper__.primary_key[0]

    @property
    def _name(self) -> str:
        return self.model_class.__name__

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        """Re-raise driver errors as DatabaseError; domain errors pass through."""
        try:
            yield
        except BaseFundspaceException:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to {action} {self._name}: {str(e)}")

    async def create(self, data: Dict[str, Any]) -> T:
        async with self._guard("create"):
            instance = self.model_class(**data)
            self.session.add(instance)
            await self.session.flush()
            await self.session.refresh(instance)
            return instance

    async def get_by_id(self, id: Any) -> Optional[T]:
        async with self._guard("load"):
            result = await self.session.execute(select(self.model_class).where(self._pk == id))
            return result.scalar_one_or_none()

    async def get_by_ids(self, ids: List[Any]) -> List[T]:
        if not ids:
            return []
        async with self._guard("load"):
            result = await self.session.execute(select(self.model_class).where(self._pk.in_(ids)))
            return list(result.scalars().all())

    async def update(self, id: Any, data: Dict[str, Any]) -> T:
        """Set columns on one row; attribute writes keep the model's validators in play."""
        instance = await self.get_by_id(id)
        if instance is None:
            raise ResourceNotFoundError(self._name, str(id))
        columns = set(self.model_class.__table__.columns.keys())
        unknown = sorted(set(data) - columns)
        if unknown:
            raise DatabaseError(f"Failed to update {self._name}: unknown columns {', '.join(unknown)}")

        async with self._guard("update"):
            for key, value in data.items():
                setattr(instance, key, value)
            await self.session.flush()
            await self.session.refresh(instance)
            return instance

    async def delete(self, id: Any) -> bool:
        async with self._guard("delete"):
            result = await self.session.execute(delete(self.model_class).where(self._pk == id))
            await self.session.flush()
            return result.rowcount > 0

    async def exists(self, id: Any) -> bool:
        return await self.count(self._pk == id) > 0

    async def count(self, *conditions: Any) -> int:
        """Number of rows matching every condition (all rows when none are given)."""
        async with self._guard("count"):
            query = select(func.count()).select_from(self.model_class)
            if conditions:
                query = query.where(*conditions)
            return (await self.session.execute(query)).scalar()

    def _apply_search(self, query: Select, search_term: str, search_fields: List[str]) -> Select:
        """Case-insensitive substring match on any of the named columns."""
        columns = [getattr(self.model_class, name) for name in search_fields if hasattr(self.model_class, name)]
        if not search_term or not columns:
            return query
        return query.where(or_(*(column.ilike(f"%{search_term}%") for column in columns)))
