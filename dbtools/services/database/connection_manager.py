"""
Database Connection Manager

Opens one scoped connection per gateway call. Pooling is left to the
driver; nothing is cached between calls.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional
from urllib.parse import unquote, urlparse

from databases import Database

logger = logging.getLogger("dbtools.database.connection")

POSTGRES = "postgresql"
MARIADB = "mariadb"

_SCHEME_ENGINES = {
    "postgres": POSTGRES,
    "postgresql": POSTGRES,
    "mysql": MARIADB,
    "mariadb": MARIADB,
}

DEFAULT_PORTS = {POSTGRES: 5432, MARIADB: 3306}
# one server connection per scoped call; the drivers default to a pool of ten
POOL_OPTIONS = {"min_size": 1, "max_size": 1}


def detect_engine(database_url: str) -> str:
    """
    Return the engine name for a SQLAlchemy style URL.

    Raises:
        ValueError: If the scheme is not PostgreSQL or MariaDB/MySQL.
    """
    scheme = urlparse(database_url).scheme.split("+", 1)[0].lower()
    engine = _SCHEME_ENGINES.get(scheme)
    if engine is None:
        raise ValueError(f"Unsupported database URL scheme: '{scheme}'")
    return engine


@dataclass(frozen=True)
class DatabaseUrlParts:
    engine: str
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    database: str


def parse_database_url(database_url: str) -> DatabaseUrlParts:
    engine = detect_engine(database_url)
    parsed = urlparse(database_url)
    return DatabaseUrlParts(
        engine=engine,
        host=parsed.hostname or "localhost",
        port=parsed.port or DEFAULT_PORTS[engine],
        user=unquote(parsed.username) if parsed.username else None,
        password=unquote(parsed.password) if parsed.password else None,
        database=unquote(parsed.path.lstrip("/")),
    )


def normalize_url(database_url: str) -> str:
    """
    Rewrite the scheme to one the `databases` package understands
    ("mariadb://" becomes "mysql://"; driver suffixes are kept).
    """
    scheme, sep, rest = database_url.partition("://")
    base, plus, driver = scheme.partition("+")
    if base.lower() == "mariadb":
        base = "mysql"
    return f"{base}{plus}{driver}{sep}{rest}"


class ConnectionManager:
    """
    Hands out short-lived connections to the target database.
    """

    def __init__(self, database_url: str):
        """
        Args:
            database_url: Full database connection URL.
        """
        if not database_url:
            raise ValueError("A database URL is required")
        self.database_url = database_url
        self.engine = detect_engine(database_url)
        self.parts = parse_database_url(database_url)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Database]:
        """
        Open a fresh connection, always closed on exit, errors included.
        """
        database = Database(normalize_url(self.database_url), **POOL_OPTIONS)
        await database.connect()
        logger.debug(f"Connection opened to '{self.parts.database}'")
        try:
            yield database
        finally:
            await database.disconnect()
            logger.debug(f"Connection closed to '{self.parts.database}'")
