"""Base repository with common CRUD operations.

Usage:
    from storeguard.db.repositories.base import BaseRepository

    class CustomerRepository(BaseRepository[Customer, int]):
        pass

    repo = CustomerRepository(db_session)
    customer = await repo.get(customer_id)
"""

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Generic repository for SQLAlchemy models.

    Type Parameters:
        ModelType: The SQLAlchemy model class
        PKType: The type of the primary key

    Attributes:
        model: The model class
        db: The database session
    """

    model: type[ModelType]

    def __init__(self, db: AsyncSession):
        self.db = db

    def __init_subclass__(cls, **kwargs):
        """Extract model type from generic parameter."""
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            args = getattr(base, "__args__", None)
            if args:
                first_arg = args[0]
                if isinstance(first_arg, type) and issubclass(first_arg, Base):
                    cls.model = first_arg
                    break

    async def get(self, pk: PKType) -> ModelType | None:
        """Get a single record by primary key."""
        return await self.db.get(self.model, pk)

    async def count(self) -> int:
        """Count total records."""
        stmt = select(func.count()).select_from(self.model)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def create(self, obj: ModelType, *, commit: bool = True) -> ModelType:
        """Add a new record.

        Args:
            obj: Model instance to create
            commit: Whether to commit the transaction

        Returns:
            The persisted instance
        """
        self.db.add(obj)
        if commit:
            await self.db.commit()
            await self.db.refresh(obj)
        else:
            await self.db.flush()
        return obj

    async def delete(self, obj: ModelType, *, commit: bool = True) -> None:
        """Delete a record."""
        await self.db.delete(obj)
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()
