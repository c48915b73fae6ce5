"""
Concurrency Control: Optimistic Locking

Version-based optimistic concurrency control. Writers read a row's version, then
update it with a conditional WHERE on that version; zero affected rows means some
other transaction got there first.
"""

from typing import Any

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.domain.exceptions import ConcurrencyError

logger = structlog.get_logger(__name__)


class OptimisticConcurrencyControl:
    """
    Optimistic concurrency control using version numbers.

    Used for read-heavy workloads where conflicts are rare.
    """

    @staticmethod
    def check_version(
        expected_version: int, current_version: int, resource_id: str
    ) -> None:
        """
        Check if version matches expected value.

        Args:
            expected_version: Expected version number
            current_version: Current version number
            resource_id: Resource identifier (for error message)

        Raises:
            ConcurrencyError: If versions don't match
        """
        if expected_version != current_version:
            raise ConcurrencyError(
                f"Optimistic concurrency conflict for {resource_id}: "
                f"expected version {expected_version}, but current is {current_version}",
                context={
                    "resource_id": resource_id,
                    "expected_version": expected_version,
                    "current_version": current_version,
                },
            )

    @staticmethod
    def increment_version(current_version: int) -> int:
        """Increment version number."""
        return current_version + 1

    @classmethod
    async def compare_and_swap(
        cls,
        session: AsyncSession,
        model: Any,
        entity_id: Any,
        read_version: int,
        **values: Any,
    ) -> int:
        """
        Conditionally update a versioned row.

        Args:
            session: Session inside the caller's transaction
            model: Mapped class with ``id`` and ``version`` columns
            entity_id: Primary key of the row
            read_version: Version observed when the row was read
            **values: Column values to write alongside the new version

        Returns:
            int: The new version

        Raises:
            ConcurrencyError: If no row matched the read version
        """
        new_version = cls.increment_version(read_version)
        stmt = (
            update(model)
            .where(model.id == entity_id, model.version == read_version)
            .values(version=new_version, **values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)

        if result.rowcount == 0:
            logger.warning(
                "Optimistic update rejected",
                entity=model.__name__,
                entity_id=str(entity_id),
                read_version=read_version,
            )
            raise ConcurrencyError(
                context={"entity_id": str(entity_id), "read_version": read_version},
            )

        return new_version
