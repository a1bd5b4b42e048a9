"""
MariaDB Gateway

MariaDB/MySQL variant of the gateway. The administrative connection has no
default schema; the target database is created with utf8mb4.
"""
import logging
from typing import Iterable

import aiomysql
from databases.core import Connection

from dbtools.core.migrations.migration_models import DbResult
from dbtools.core.sql_splitter import split_sql_statements
from dbtools.services.database.gateway import VERSION_TABLE, SqlDatabaseGateway

logger = logging.getLogger("dbtools.database.mariadb")


class MariaDbGateway(SqlDatabaseGateway):

    CREATE_VERSION_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {VERSION_TABLE} (
        id INT AUTO_INCREMENT PRIMARY KEY,
        version VARCHAR(50) NOT NULL,
        executed_at DATETIME NOT NULL,
        description TEXT NULL
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """

    def __init__(self, database_url: str):
        super().__init__(database_url, logger=logger)

    def split_statements(self, sql_content: str) -> Iterable[str]:
        # the quote aware splitter is a superset of plain semicolon splitting
        return split_sql_statements(sql_content)

    async def _execute_raw(self, connection: Connection, statement: str) -> None:
        # no args: the driver does not apply %-formatting to the statement
        async with connection.raw_connection.cursor() as cursor:
            await cursor.execute(statement)

    async def ensure_database_exists(self) -> DbResult:
        parts = self.connections.parts
        conn = None
        try:
            logger.debug(f"Connecting to server to check existence of '{self.database_name}'")
            conn = await aiomysql.connect(
                host=parts.host,
                port=parts.port,
                user=parts.user or "root",
                password=parts.password or "",
                autocommit=True,
            )
            async with conn.cursor() as cursor:
                await cursor.execute(
                    "SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = %s",
                    (self.database_name,),
                )
                exists = await cursor.fetchone()
                if exists:
                    logger.debug(f"Database '{self.database_name}' already exists")
                    return DbResult.success(False)

                escaped_name = self.database_name.replace("`", "``")
                await cursor.execute(
                    f"CREATE DATABASE IF NOT EXISTS `{escaped_name}` "
                    "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
                )
            logger.info(f"Database '{self.database_name}' created successfully")
            return DbResult.success(True)
        except Exception as e:
            return self._failure("creating database", e)
        finally:
            if conn is not None:
                conn.close()
