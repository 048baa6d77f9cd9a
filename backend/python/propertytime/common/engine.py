"""
Engine factory for the submission store.

Server databases (Azure SQL, PostgreSQL) get a pooled engine that is probed
before use; SQLite serves local demos and the test suite.
"""

import time
import urllib.parse
import logging
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .config import DatabaseConfig, DatabaseType


logger = logging.getLogger(__name__)

# SQLAlchemy dialect+driver per server database type
SERVER_DIALECTS = {
    DatabaseType.AZURE_SQL: 'mssql+pyodbc',
    DatabaseType.POSTGRESQL: 'postgresql+psycopg2',
}

IN_MEMORY_SQLITE = ('sqlite://', 'sqlite:///:memory:')


def build_connection_string(db_config: DatabaseConfig) -> str:
    """
    Build the SQLAlchemy URL for db_config.

    Credentials are URL-encoded. Azure SQL needs an ODBC driver name and
    always connects encrypted. SQLite without a database name is in-memory.

    Raises:
        ValueError: If the type is unsupported or Azure SQL has no driver
    """
    if db_config.db_type == DatabaseType.SQLITE:
        return f"sqlite:///{db_config.database}" if db_config.database else 'sqlite://'

    dialect = SERVER_DIALECTS.get(db_config.db_type)
    if dialect is None:
        raise ValueError(
            f"Unsupported database type: {db_config.db_type}. "
            f"Supported types: {', '.join(t.value for t in DatabaseType)}"
        )

    credentials = (
        f"{urllib.parse.quote_plus(db_config.username)}:"
        f"{urllib.parse.quote_plus(db_config.password)}"
    )
    url = f"{dialect}://{credentials}@{db_config.host}:{db_config.port}/{db_config.database}"

    if db_config.db_type == DatabaseType.AZURE_SQL:
        if not db_config.driver:
            raise ValueError("Azure SQL requires an ODBC driver name (database.driver)")
        url += (
            f"?driver={urllib.parse.quote_plus(db_config.driver)}"
            f"&Encrypt=yes&TrustServerCertificate=no"
        )

    logger.debug(f"Connection URL built for {db_config.db_type.value}")
    return url


def create_engine_from_url(connection_url: str, db_config: DatabaseConfig = None) -> Engine:
    """
    Create an engine for an explicit URL.

    In-memory SQLite shares one connection so every session sees the same
    data. Pool sizing from db_config applies to server databases only.
    """
    if connection_url.startswith('sqlite'):
        options = {'connect_args': {'check_same_thread': False}}
        if connection_url in IN_MEMORY_SQLITE:
            options['poolclass'] = StaticPool
        return create_engine(connection_url, **options)

    db_config = db_config or DatabaseConfig()
    return create_engine(
        connection_url,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=db_config.pool_recycle,
        pool_pre_ping=db_config.pool_pre_ping,
    )


def create_engine_from_config(
    db_config: DatabaseConfig,
    retries: int = 3,
    retry_delay: int = 5
) -> Engine:
    """
    Create the engine for db_config and check it can connect.

    Args:
        db_config: Database configuration
        retries: Connection attempts before giving up (default: 3)
        retry_delay: Seconds between attempts (default: 5)

    Returns:
        Engine: Connected, pooled SQLAlchemy engine

    Raises:
        ValueError: If the configuration cannot be turned into a URL
        OperationalError: If every connection attempt fails
    """
    engine = create_engine_from_url(build_connection_string(db_config), db_config)
    target = f"{db_config.db_type.value} (host={db_config.host}, database={db_config.database})"

    for attempt in range(1, retries + 1):
        try:
            with engine.connect():
                pass
            logger.info(f"Database engine ready: {target}")
            return engine
        except OperationalError as oe:
            logger.error(f"Connection attempt {attempt}/{retries} to {target} failed: {oe}")
            if attempt == retries:
                logger.critical(f"Giving up on {target} after {retries} attempts")
                engine.dispose()
                raise
            logger.info(f"Retrying in {retry_delay} seconds...")
            time.sleep(retry_delay)

    raise ValueError(f"retries must be at least 1, got {retries}")
