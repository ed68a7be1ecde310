"""
Record storage for the billing collections.

WHY: The billing services only need a handful of storage operations
(find-first-by-field, find-by-id, new record, save, collection lookup).
Keeping them behind one small object separates data access from the
reconciliation logic and lets tests run against SQLite.
"""

import logging
from typing import Any, Optional, Type, TypeVar

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_bridge.core.exceptions import PersistenceError, SchemaMissingError
from billing_bridge.models import COLLECTIONS
from billing_bridge.models.base import Base

logger = logging.getLogger(__name__)

# Type variable for model class
ModelType = TypeVar("ModelType", bound=Base)


class RecordStore:
    """
    Data access for billing records, bound to one request session.

    Every lookup is a fresh query: there is no identity caching across
    calls beyond what the SQLAlchemy session itself does.
    """

    def __init__(self, session: AsyncSession):
        """
        Args:
            session: Async database session for the current request
        """
        self.session = session

    async def find_collection(self, name: str) -> Type[Base]:
        """
        Resolve a collection name to its model and check the table exists.

        Args:
            name: Collection name ("customer", "product", ...)

        Returns:
            The model class

        Raises:
            SchemaMissingError: If the collection is unknown or its table is missing
        """
        model = COLLECTIONS.get(name)
        if model is None:
            raise SchemaMissingError(
                message=f"could not find collection {name}",
                collection=name,
            )

        table_name = model.__tablename__

        def _has_table(sync_session) -> bool:
            return inspect(sync_session.connection()).has_table(table_name)

        if not await self.session.run_sync(_has_table):
            raise SchemaMissingError(
                message=f"could not find collection {name}",
                collection=name,
                table=table_name,
            )
        return model

    async def find_first(
        self, model: Type[ModelType], field_name: str, value: Any
    ) -> Optional[ModelType]:
        """
        Retrieve the first record whose field equals value.

        WHY: External ids are not unique-constrained, so a duplicate left by a
        concurrent insert must not break lookups. Ordering by primary key makes
        "first" deterministic.

        Raises:
            AttributeError: If field_name doesn't exist on the model
        """
        if not hasattr(model, field_name):
            raise AttributeError(f"{model.__name__} has no field '{field_name}'")

        result = await self.session.execute(
            select(model)
            .where(getattr(model, field_name) == value)
            .order_by(model.id)
            .limit(1)
        )
        return result.scalars().first()

    async def get_by_id(self, model: Type[ModelType], id: int) -> Optional[ModelType]:
        """Retrieve a single record by primary key."""
        result = await self.session.execute(select(model).where(model.id == id))
        return result.scalar_one_or_none()

    def new_record(self, model: Type[ModelType], **fields: Any) -> ModelType:
        """Build an unsaved record; nothing is written until save()."""
        return model(**fields)

    async def save(
        self,
        record: ModelType,
        *,
        operation: str,
        external_id: Optional[str] = None,
        failure_message: str = "could not save record",
    ) -> ModelType:
        """
        Insert or update a record.

        Args:
            record: New or loaded model instance
            operation: Name of the calling operation, for logs
            external_id: Stripe id the record is keyed by, for logs
            failure_message: Reason returned to the caller on failure

        Returns:
            The saved record with generated fields populated

        Raises:
            PersistenceError: If the database rejects the write
        """
        try:
            self.session.add(record)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                f"Could not save {type(record).__name__} during {operation}: {e}",
                extra={"operation": operation, "external_id": external_id},
            )
            raise PersistenceError(
                message=failure_message,
                operation=operation,
                external_id=external_id,
                db_error=str(e),
            )
        return record

    async def count(self, model: Type[ModelType], **filters: Any) -> int:
        """Count records matching field == value filters."""
        query = select(func.count()).select_from(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def commit(self) -> None:
        """
        Make everything saved so far durable.

        Raises:
            PersistenceError: If the commit fails
        """
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            raise PersistenceError(message="could not save record", db_error=str(e))
