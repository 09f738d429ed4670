from typing import Any, Generic, Sequence, Type, TypeVar

from sqlalchemy import SQLColumnExpression, and_, delete as sa_delete, update as sa_update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Delete, Select, Update

from inkwell.core.exceptions.types import DatabaseException

T = TypeVar("T")


class BaseDB(Generic[T]):
    def __init__(self, model: Type[T]):
        self.model = model

    async def get_by_id(
        self, session: AsyncSession, id: str, options: list[Any] | None = None
    ) -> T | None:
        """
        Asynchronously retrieves an instance of the model by its primary key.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            id (str): The primary key value of the model instance to retrieve.
            options (list[Any], optional): SQLAlchemy loader options (e.g., selectinload).

        Returns:
            T | None: The model instance if found, otherwise None.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt: Select = (
                select(self.model)
                .options(*(options or []))
                .where(getattr(self.model, "id") == id)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with ID {id}: {str(e)}"
            ) from e

    async def get_one_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        options: list[Any] | None = None,
    ) -> T | None:
        """
        Asynchronously retrieves a single record of the model that matches the given conditions.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt = select(self.model).options(*(options or [])).where(and_(*conditions))
            result = await session.execute(stmt)
            return result.scalars().first()
        except (SQLAlchemyError, ValueError) as e:
            raise DatabaseException(
                f"Error retrieving one {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e

    async def exists(
        self, session: AsyncSession, conditions: Sequence[SQLColumnExpression]
    ) -> bool:
        return await self.get_one_by_conditions(session, conditions) is not None

    async def create(
        self, session: AsyncSession, data: dict, commit_self: bool = True
    ) -> T:
        """
        Asynchronously creates and persists a new instance of the model.

        Args:
            session (AsyncSession): The SQLAlchemy asynchronous session to use.
            data (dict): Fields and values to initialize the model instance.
            commit_self (bool, optional): If True, commits and refreshes the object.
                If False, only flushes so the caller can commit a larger unit of work.

        Returns:
            T: The newly created model instance.

        Raises:
            DatabaseException: If an error occurs while creating the instance.
        """
        try:
            obj = self.model(**data)
            session.add(obj)

            if commit_self:
                await session.commit()
                await session.refresh(obj)
            else:
                await session.flush()

            return obj
        except (SQLAlchemyError, ValueError) as e:
            raise DatabaseException(
                f"Error creating {self.model.__name__}: {str(e)}"
            ) from e

    async def update(
        self, session: AsyncSession, id: str, updates: dict, commit_self: bool = True
    ) -> int:
        """
        Asynchronously updates the record with the given ID.

        Returns:
            int: The number of rows updated (0 or 1).

        Raises:
            DatabaseException: If an error occurs while updating the record.
        """
        try:
            stmt: Update = (
                sa_update(self.model)
                .where(getattr(self.model, "id") == id)
                .values(**updates)
            )
            result = await session.execute(stmt)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return result.rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error updating {self.model.__name__} with ID {id}: {str(e)}"
            ) from e

    async def delete_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        commit_self: bool = True,
    ) -> int:
        """
        Asynchronously deletes every record matching ``conditions``.

        Returns:
            int: The number of rows deleted.

        Raises:
            DatabaseException: If an error occurs while deleting.
        """
        try:
            stmt: Delete = sa_delete(self.model).where(and_(*conditions))
            result = await session.execute(stmt)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return result.rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error deleting {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e
