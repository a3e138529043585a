"""
Repository pattern implementations for database operations.

This module provides repository classes for database operations following
the repository pattern for clean separation of data access logic.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.postgres.models import AuditLog, Base, Vehicle

# Generic type for models
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations.

    Attributes:
        model: The SQLAlchemy model class.
        db: The async database session.
    """

    def __init__(self, model: type[ModelType], db: AsyncSession) -> None:
        self.model = model
        self.db = db

    async def get(self, id: str | UUID) -> ModelType | None:
        """Get a single record by ID."""
        result = await self.db.execute(select(self.model).where(self.model.id == id))  # type: ignore[attr-defined]
        return result.scalar_one_or_none()

    async def get_all(self, skip: int = 0, limit: int = 100) -> list[ModelType]:
        """Get all records with pagination."""
        result = await self.db.execute(select(self.model).offset(skip).limit(limit))
        return list(result.scalars().all())

    async def create(self, obj_in: dict) -> ModelType:
        """Create a new record."""
        db_obj = self.model(**obj_in)
        self.db.add(db_obj)
        await self.db.flush()
        await self.db.refresh(db_obj)
        return db_obj

    async def update(self, id: str | UUID, obj_in: dict) -> ModelType | None:
        """Update an existing record."""
        db_obj = await self.get(id)
        if db_obj:
            for key, value in obj_in.items():
                setattr(db_obj, key, value)
            await self.db.flush()
            await self.db.refresh(db_obj)
        return db_obj

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()


class VehicleRepository(BaseRepository[Vehicle]):
    """Repository for vehicle listings keyed by (name, model_trim, country)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(Vehicle, db)

    async def find_by_natural_key(
        self,
        name: str,
        model_trim: str | None,
        country: str,
    ) -> Vehicle | None:
        """
        Look up a vehicle by its composite natural key.

        A missing trim only matches rows whose trim is also NULL.
        """
        trim_clause = Vehicle.model_trim.is_(None) if model_trim is None else Vehicle.model_trim == model_trim
        result = await self.db.execute(
            select(Vehicle).where(
                Vehicle.name == name,
                trim_clause,
                Vehicle.country == country,
            )
        )
        return result.scalar_one_or_none()

    async def list_vehicles(
        self,
        country: str | None = None,
        available: bool | None = None,
    ) -> list[Vehicle]:
        """
        List vehicles ordered by name.

        Args:
            country: Restrict to one market when given.
            available: Restrict to rows with this availability when given.
        """
        query = select(Vehicle)
        if country:
            query = query.where(Vehicle.country == country)
        if available is not None:
            query = query.where(Vehicle.is_available == available)
        query = query.order_by(Vehicle.name.asc(), Vehicle.model_trim.asc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_many(self, ids: Sequence[UUID]) -> list[Vehicle]:
        """Fetch vehicles by id, preserving the order of ``ids``."""
        if not ids:
            return []
        result = await self.db.execute(select(Vehicle).where(Vehicle.id.in_(ids)))
        by_id = {v.id: v for v in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def mark_stale(self, cutoff: datetime) -> int:
        """
        Flag available vehicles last updated before ``cutoff`` as unavailable.

        Returns:
            Number of rows marked.
        """
        result = await self.db.execute(
            update(Vehicle)
            .where(Vehicle.is_available.is_(True), Vehicle.updated_at < cutoff)
            .values(is_available=False)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        return result.rowcount or 0

    async def update_by_natural_key(
        self,
        name: str,
        model_trim: str | None,
        country: str,
        values: dict[str, Any],
    ) -> bool:
        """Apply ``values`` to the row matching the natural key. False when absent."""
        vehicle = await self.find_by_natural_key(name, model_trim, country)
        if vehicle is None:
            return False
        for key, value in values.items():
            setattr(vehicle, key, value)
        await self.db.flush()
        return True


class AuditLogRepository(BaseRepository[AuditLog]):
    """Repository for ingestion audit entries."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(AuditLog, db)

    async def record(self, action: str, changes: dict[str, Any], entity_type: str = "vehicle") -> AuditLog:
        return await self.create({"action": action, "entity_type": entity_type, "changes": changes})

    async def latest(self, action: str | None = None) -> AuditLog | None:
        query = select(AuditLog)
        if action:
            query = query.where(AuditLog.action == action)
        result = await self.db.execute(query.order_by(desc(AuditLog.created_at)).limit(1))
        return result.scalar_one_or_none()
