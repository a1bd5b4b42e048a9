"""
Database Gateway

The capability interface the migration runner depends on, plus the
engine-neutral part of its SQL implementations. Every operation opens its
own connection and reports failure through a DbResult instead of raising.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from databases.core import Connection

from dbtools.core.migrations.migration_models import DbResult, ExecutedVersion
from dbtools.services.database.connection_manager import ConnectionManager
from dbtools.services.database.errors import classify_exception

VERSION_TABLE = "db_versions"


class DatabaseGateway(ABC):
    """
    Operations the runner needs from a database engine.
    """

    @abstractmethod
    async def ensure_database_exists(self) -> DbResult:
        """Create the target database if it is missing."""

    @abstractmethod
    async def initialize_version_table(self) -> DbResult:
        """Create the version tracking table if it is missing."""

    @abstractmethod
    async def get_latest_version(self) -> DbResult:
        """``value`` is the most recently executed version, or None."""

    @abstractmethod
    async def get_executed_versions(self) -> DbResult:
        """``value`` is a list of ExecutedVersion ordered by execution time."""

    @abstractmethod
    async def record_migration(self, version: str, description: Optional[str] = None) -> DbResult:
        """Insert one executed version row stamped with the current UTC time."""

    @abstractmethod
    async def execute_sql_script(self, sql_content: str) -> DbResult:
        """Run every statement of ``sql_content`` in order, stopping at the first error."""

    @abstractmethod
    async def test_connection(self) -> DbResult:
        """Open and close a connection to the target database."""


class SqlDatabaseGateway(DatabaseGateway):
    """
    Shared implementation over the `databases` package. Engine subclasses
    provide database creation, the version table DDL and raw statement
    execution.
    """

    CREATE_VERSION_TABLE_SQL: str = ""

    def __init__(self, database_url: str, logger: Optional[logging.Logger] = None):
        self.connections = ConnectionManager(database_url)
        self.database_name = self.connections.parts.database
        self.logger = logger or logging.getLogger("dbtools.database")

    def _failure(self, action: str, exc: BaseException, value: Any = None) -> DbResult:
        kind = classify_exception(exc)
        message = f"Error {action}: {exc}"
        self.logger.error(message)
        return DbResult.failure(kind, message, exc, value=value)

    @abstractmethod
    def split_statements(self, sql_content: str) -> Iterable[str]:
        """Split a script into statements for this engine."""

    @abstractmethod
    async def _execute_raw(self, connection: Connection, statement: str) -> None:
        """Execute one statement verbatim, bypassing bind parameter parsing."""

    async def initialize_version_table(self) -> DbResult:
        try:
            async with self.connections.connection() as database:
                async with database.connection() as connection:
                    await self._execute_raw(connection, self.CREATE_VERSION_TABLE_SQL)
            self.logger.debug(f"{VERSION_TABLE} table created/verified")
            return DbResult.success(True)
        except Exception as e:
            return self._failure("initializing version table", e)

    async def get_latest_version(self) -> DbResult:
        query = f"SELECT version FROM {VERSION_TABLE} ORDER BY executed_at DESC, id DESC LIMIT 1"
        try:
            async with self.connections.connection() as database:
                version = await database.fetch_val(query)
            return DbResult.success(version)
        except Exception as e:
            return self._failure("getting latest version", e)

    async def get_executed_versions(self) -> DbResult:
        query = f"""
        SELECT id, version, executed_at, description
        FROM {VERSION_TABLE}
        ORDER BY executed_at, id
        """
        try:
            async with self.connections.connection() as database:
                rows = await database.fetch_all(query)
            versions = [
                ExecutedVersion(
                    id=row["id"],
                    version=row["version"],
                    executed_at=row["executed_at"],
                    description=row["description"],
                )
                for row in rows
            ]
            return DbResult.success(versions)
        except Exception as e:
            return self._failure("getting executed versions", e, value=[])

    async def record_migration(self, version: str, description: Optional[str] = None) -> DbResult:
        query = f"""
        INSERT INTO {VERSION_TABLE} (version, executed_at, description)
        VALUES (:version, :executed_at, :description)
        """
        # naive UTC: the column is TIMESTAMP / DATETIME without time zone
        executed_at = datetime.now(timezone.utc).replace(tzinfo=None)
        try:
            async with self.connections.connection() as database:
                await database.execute(query, {
                    "version": version,
                    "executed_at": executed_at,
                    "description": description,
                })
            self.logger.info(f"Recorded version {version} in {VERSION_TABLE}")
            return DbResult.success(True)
        except Exception as e:
            return self._failure("recording migration", e)

    async def execute_sql_script(self, sql_content: str) -> DbResult:
        statements = list(self.split_statements(sql_content))
        executed = 0
        try:
            async with self.connections.connection() as database:
                async with database.connection() as connection:
                    for i, statement in enumerate(statements, 1):
                        await self._execute_raw(connection, statement)
                        executed = i
                        self.logger.debug(f"  Executed statement {i}/{len(statements)}")
            return DbResult.success(executed)
        except Exception as e:
            return self._failure(
                f"executing SQL script (statement {executed + 1}/{len(statements)})", e
            )

    async def test_connection(self) -> DbResult:
        try:
            async with self.connections.connection() as database:
                await database.fetch_val("SELECT 1")
            return DbResult.success(True)
        except Exception as e:
            kind = classify_exception(e)
            message = f"Database connection failed: {e}"
            self.logger.error(message)
            return DbResult.failure(kind, message, e)
