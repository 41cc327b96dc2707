"""
PostgreSQL connection factory for the persistence layer.
"""

import psycopg2

from marketplace_ingestion.config import Config


def get_db_connection():
    """
    Open a database connection with connect and statement timeouts applied.

    Returns:
        psycopg2 connection with autocommit off

    Raises:
        psycopg2.OperationalError: If the database is unreachable
    """
    details = Config.get_db_connection_details()
    conn = psycopg2.connect(connect_timeout=Config.DB_CONNECT_TIMEOUT, **details)
    cursor = conn.cursor()
    try:
        cursor.execute("SET statement_timeout = %s", (Config.DB_STATEMENT_TIMEOUT,))
    finally:
        cursor.close()
    conn.commit()
    return conn
