"""Neo4j driver and connection management.

Async-first driver lifecycle plus a small query executor that turns driver
failures into ``PersistenceError``.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, Generic, LiteralString, TypeVar, cast

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable

from memory_vault.core.base import DatabaseErrorDetails, ErrorLevel
from memory_vault.core.config import Neo4jConfig, settings
from memory_vault.core.decorators import with_error_handling
from memory_vault.core.errors import PersistenceError
from memory_vault.core.logging import get_logger
from memory_vault.infrastructure.neo4j.queries import SchemaQueries

logger = get_logger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def create_neo4j_driver(
    config: Neo4jConfig | None = None,
    max_connection_pool_size: int = 50,
    max_connection_lifetime: int = 3600,
) -> AsyncIterator[AsyncDriver]:
    """Open a verified Neo4j driver and close it on exit.

    Raises:
        PersistenceError: If the database cannot be reached
    """
    config = config or settings.neo4j
    logger.info(
        "Creating Neo4j driver",
        uri=config.uri,
        pool_size=max_connection_pool_size,
        connection_lifetime=max_connection_lifetime,
    )

    driver = AsyncGraphDatabase.driver(
        config.uri,
        auth=(config.user, config.password.get_secret_value()),
        max_connection_pool_size=max_connection_pool_size,
        max_connection_lifetime=max_connection_lifetime,
    )
    try:
        try:
            await driver.verify_connectivity()
        except (ServiceUnavailable, Neo4jError, OSError) as e:
            raise PersistenceError(
                message=f"Neo4j unreachable: {e!s}",
                details=DatabaseErrorDetails(
                    source="create_neo4j_driver",
                    operation="verify_connectivity",
                    service_name="Neo4j",
                    endpoint=config.uri,
                ),
            ) from e
        logger.info("Neo4j connection established")
        yield driver
    finally:
        await driver.close()
        logger.info("Neo4j driver closed")


class Neo4jQuery(Generic[T]):
    """Neo4j query executor with typed results."""

    def __init__(self, driver: AsyncDriver) -> None:
        self.driver: AsyncDriver = driver

    def _failure(self, e: Exception, query: str) -> PersistenceError:
        first_line = query.strip().splitlines()[0] if query.strip() else ""
        return PersistenceError(
            message=f"Neo4j query failed: {e!s}",
            details=DatabaseErrorDetails(
                source="Neo4jQuery",
                operation=first_line[:80],
                service_name="Neo4j",
                query_type=first_line.split(" ", 1)[0].lower() if first_line else None,
            ),
        )

    async def execute_list(
        self,
        query: LiteralString,
        params: dict[str, Any] | None = None,
        result_transformer: Callable[[Any], T] | None = None,
    ) -> list[T]:
        """Execute a query and return every record, transformed if requested."""
        logger.debug("Executing Neo4j query for result list", query=query)
        try:
            async with self.driver.session() as session:
                result = await session.run(query, parameters=params or {})
                records = [record async for record in result]
        except Neo4jError as e:
            raise self._failure(e, query) from e

        if result_transformer is None:
            return cast("list[T]", records)
        return [result_transformer(record) for record in records]

    async def execute_single(
        self,
        query: LiteralString,
        params: dict[str, Any] | None = None,
        result_transformer: Callable[[Any], T] | None = None,
    ) -> T | None:
        """Execute a query and return the first record or None."""
        logger.debug("Executing Neo4j query for single result", query=query)
        try:
            async with self.driver.session() as session:
                result = await session.run(query, parameters=params or {})
                record = await result.single(strict=False)
        except Neo4jError as e:
            raise self._failure(e, query) from e

        if record is None:
            return None
        return result_transformer(record) if result_transformer else cast("T", record)

    async def execute_value(self, query: LiteralString, params: dict[str, Any] | None = None) -> Any:
        """Execute a query and return the first value of the first record."""
        record = await self.execute_single(query, params)
        if record is not None and len(record) > 0:
            return record[0]
        return None


@with_error_handling(error_level=ErrorLevel.ERROR)
async def ensure_schema(driver: AsyncDriver) -> None:
    """Create the constraints and lookup indexes used by the repository. Idempotent."""
    executor: Neo4jQuery[Any] = Neo4jQuery(driver)
    for query in SchemaQueries.all():
        await executor.execute_value(query)
    logger.info("Neo4j schema ensured")
