# src/services/base_service.py
from typing import Type, TypeVar, List, Optional, Dict, Any, Sequence
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from fastapi import HTTPException, status
from pydantic import BaseModel
from utils.logger import setup_logger
from utils.exceptions import handle_db_exception

ModelType = TypeVar("ModelType")


class BaseService:
    """Single-row CRUD for one model; every write commits on its own"""

    def __init__(self, model: Type[ModelType]):
        self.model = model
        self.logger = setup_logger(f"SERVICE_{model.__name__}")

    def _conditions(self, filters: Optional[Dict[str, Any]]) -> list:
        conditions = []
        for field, value in (filters or {}).items():
            if hasattr(self.model, field):
                conditions.append(getattr(self.model, field) == value)
        return conditions

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        """Get a single item by ID"""
        try:
            result = await db.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await handle_db_exception(db, self.logger, f"get {self.model.__name__}", e)

    async def get_multi(
        self,
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """Get multiple items with equality filters"""
        try:
            query = select(self.model)

            conditions = self._conditions(filters)
            if conditions:
                query = query.where(and_(*conditions))
            if order_by:
                query = query.order_by(*order_by)
            if limit:
                query = query.limit(limit)

            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await handle_db_exception(
                db, self.logger, f"get_multi {self.model.__name__}", e
            )

    async def get_by_ids(self, db: AsyncSession, ids: Sequence[UUID]) -> List[ModelType]:
        if not ids:
            return []
        try:
            result = await db.execute(select(self.model).where(self.model.id.in_(ids)))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await handle_db_exception(
                db, self.logger, f"get_by_ids {self.model.__name__}", e
            )

    async def create(self, db: AsyncSession, obj_in: Any) -> ModelType:
        """Insert a model instance, or build one from a pydantic schema"""
        try:
            if isinstance(obj_in, BaseModel):
                db_obj = self.model(**obj_in.model_dump(exclude_unset=True))
            else:
                db_obj = obj_in

            db.add(db_obj)
            await db.flush()
            await db.commit()
            await db.refresh(db_obj)

            self.logger.info(f"Created {self.model.__name__} with ID: {db_obj.id}")
            return db_obj

        except IntegrityError as e:
            await db.rollback()
            self.logger.warning(f"Integrity error creating {self.model.__name__}: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"{self.model.__name__} conflicts with an existing record",
            )
        except SQLAlchemyError as e:
            await handle_db_exception(
                db, self.logger, f"create {self.model.__name__}", e
            )

    async def create_many(self, db: AsyncSession, objs: Sequence[Any]) -> List[ModelType]:
        try:
            db.add_all(objs)
            await db.commit()
            for obj in objs:
                await db.refresh(obj)
            self.logger.info(f"Created {len(objs)} {self.model.__name__} rows")
            return list(objs)
        except SQLAlchemyError as e:
            await handle_db_exception(
                db, self.logger, f"create_many {self.model.__name__}", e
            )

    async def update(
        self, db: AsyncSession, id: UUID, values: Dict[str, Any]
    ) -> Optional[ModelType]:
        """Apply a patch to one row; model validators run on every field"""
        try:
            db_obj = await db.get(self.model, id)
            if db_obj is None:
                return None

            for field, value in values.items():
                setattr(db_obj, field, value)

            await db.commit()
            await db.refresh(db_obj)
            self.logger.debug(f"Updated {self.model.__name__} with ID: {id}")
            return db_obj
        except SQLAlchemyError as e:
            await handle_db_exception(
                db, self.logger, f"update {self.model.__name__}", e
            )
