"""
PostgreSQL Gateway

Creates the target database through the administrative 'postgres'
database and runs scripts with the dollar-quote aware splitter.
"""
import logging
from typing import Iterable

import asyncpg
from databases.core import Connection

from dbtools.core.migrations.migration_models import DbResult
from dbtools.core.sql_splitter import split_sql_statements
from dbtools.services.database.gateway import VERSION_TABLE, SqlDatabaseGateway

logger = logging.getLogger("dbtools.database.postgres")

ADMIN_DATABASE = "postgres"


class PostgresGateway(SqlDatabaseGateway):

    CREATE_VERSION_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {VERSION_TABLE} (
        id SERIAL PRIMARY KEY,
        version VARCHAR(50) NOT NULL,
        executed_at TIMESTAMP NOT NULL,
        description TEXT
    )
    """

    def __init__(self, database_url: str):
        super().__init__(database_url, logger=logger)

    def split_statements(self, sql_content: str) -> Iterable[str]:
        return split_sql_statements(sql_content)

    async def _execute_raw(self, connection: Connection, statement: str) -> None:
        # asyncpg runs argument-less queries through the simple query protocol
        await connection.raw_connection.execute(statement)

    async def ensure_database_exists(self) -> DbResult:
        """
        Connect to the default 'postgres' database and create the target
        database with UTF8 encoding if it does not exist yet.
        """
        parts = self.connections.parts
        conn = None
        try:
            logger.debug(f"Connecting to {ADMIN_DATABASE} DB to check existence of '{self.database_name}'")
            conn = await asyncpg.connect(
                host=parts.host,
                port=parts.port,
                user=parts.user,
                password=parts.password,
                database=ADMIN_DATABASE,
            )

            exists = await conn.fetchval(
                "SELECT 1 FROM pg_database WHERE datname = $1",
                self.database_name,
            )
            if exists:
                logger.debug(f"Database '{self.database_name}' already exists")
                return DbResult.success(False)

            # identifiers cannot be bound as parameters
            escaped_name = self.database_name.replace('"', '""')
            await conn.execute(f"CREATE DATABASE \"{escaped_name}\" ENCODING 'UTF8'")
            logger.info(f"Database '{self.database_name}' created successfully")
            return DbResult.success(True)
        except Exception as e:
            return self._failure("creating database", e)
        finally:
            if conn is not None:
                await conn.close()
