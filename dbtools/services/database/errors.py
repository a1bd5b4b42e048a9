"""
Maps driver exceptions onto ErrorKind so callers can tell a refused
connection from a missing database or a bad statement.
"""
import asyncio

import aiomysql
import asyncpg

from dbtools.core.migrations.migration_models import ErrorKind

# MySQL / MariaDB server and client error codes
MYSQL_NOT_FOUND_CODES = {1049, 1146}          # unknown database, unknown table
MYSQL_PERMISSION_CODES = {1044, 1045, 1142}   # access denied variants
MYSQL_CONNECTION_CODES = {2002, 2003, 2005, 2006, 2013}

PG_NOT_FOUND = (
    asyncpg.InvalidCatalogNameError,
    asyncpg.UndefinedTableError,
)
PG_PERMISSION = (
    asyncpg.InvalidPasswordError,
    asyncpg.InvalidAuthorizationSpecificationError,
    asyncpg.InsufficientPrivilegeError,
)
PG_CONNECTION = (
    asyncpg.CannotConnectNowError,
    asyncpg.ConnectionDoesNotExistError,
    asyncpg.TooManyConnectionsError,
)


def classify_exception(exc: BaseException) -> ErrorKind:
    if isinstance(exc, PG_NOT_FOUND):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, PG_PERMISSION):
        return ErrorKind.PERMISSION
    if isinstance(exc, PG_CONNECTION):
        return ErrorKind.CONNECTION
    if isinstance(exc, asyncpg.PostgresError):
        return ErrorKind.SQL

    if isinstance(exc, aiomysql.Error):
        code = exc.args[0] if exc.args and isinstance(exc.args[0], int) else None
        if code in MYSQL_NOT_FOUND_CODES:
            return ErrorKind.NOT_FOUND
        if code in MYSQL_PERMISSION_CODES:
            return ErrorKind.PERMISSION
        if code in MYSQL_CONNECTION_CODES:
            return ErrorKind.CONNECTION
        return ErrorKind.SQL

    if isinstance(exc, (OSError, asyncio.TimeoutError, asyncpg.InterfaceError)):
        return ErrorKind.CONNECTION
    return ErrorKind.UNKNOWN
