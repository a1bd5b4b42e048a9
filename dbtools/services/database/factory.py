"""
Gateway factory: picks the engine implementation from the URL scheme.
"""
from dbtools.services.database.connection_manager import MARIADB, POSTGRES, detect_engine
from dbtools.services.database.gateway import DatabaseGateway
from dbtools.services.database.mariadb_gateway import MariaDbGateway
from dbtools.services.database.postgres_gateway import PostgresGateway

_GATEWAYS = {
    POSTGRES: PostgresGateway,
    MARIADB: MariaDbGateway,
}


def create_gateway(database_url: str) -> DatabaseGateway:
    """
    Raises:
        ValueError: If the URL names an unsupported engine.
    """
    return _GATEWAYS[detect_engine(database_url)](database_url)
