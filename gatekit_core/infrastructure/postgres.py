"""
PostgreSQL connection helper for gatekit.

This module provides a simple connection function for PostgreSQL access.
Uses psycopg for the connection.
"""

import psycopg
from loguru import logger

from gatekit_core.config import settings


def get_db_connection(dsn: str | None = None):
    """
    Get a PostgreSQL database connection.

    Returns a connection that can be used as a context manager. The
    transaction is committed when the block exits cleanly and rolled back
    otherwise; the connection is closed either way.

    Usage:
        with get_db_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT id FROM projects")

    Returns:
        psycopg.Connection: A PostgreSQL connection.
    """
    try:
        conn = psycopg.connect(dsn or settings.POSTGRES_DSN)
        logger.debug("Connected to PostgreSQL")
        return conn
    except psycopg.Error as e:
        logger.error(f"Failed to connect to PostgreSQL: {e}")
        raise
