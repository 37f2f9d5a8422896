"""
Database connection management for MySQL Dumper.

The dump itself is done by mysqldump; this connection only answers questions
about the server that shape the dump command.
"""

import logging
from typing import Optional

import mysql.connector
from mysql.connector import Error as MySQLError

from .models import ConnectionSettings

SYSTEM_DATABASES = ('information_schema', 'performance_schema', 'mysql', 'sys')


class DatabaseConnection:
    """Manages a MySQL connection with context manager support."""

    DEFAULT_CHARSET = 'utf8mb4'

    def __init__(self, settings: ConnectionSettings):
        self.settings = settings
        self.connection = None

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry - establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish database connection."""
        try:
            self.connection = mysql.connector.connect(
                host=self.settings.host,
                port=self.settings.port,
                user=self.settings.user,
                password=self.settings.password,
                charset=self.DEFAULT_CHARSET,
                use_unicode=True
            )
            logging.info(f"Connected to {self.settings.host}:{self.settings.port}")
        except MySQLError as e:
            logging.error(f"Failed to connect to database: {e}")
            raise

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection and self.connection.is_connected():
            self.connection.close()
            logging.debug("Database connection closed")

    def execute_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        """Execute a query and return results."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        finally:
            cursor.close()

    def get_databases(self, include_system: bool = False) -> list[str]:
        """Get the names of the databases on the server."""
        results = self.execute_query("SHOW DATABASES")
        names = [row[0] for row in results]
        if include_system:
            return names
        return [name for name in names if name not in SYSTEM_DATABASES]

    def get_table_engines(
        self,
        databases: list[str],
        tables: Optional[list[str]] = None
    ) -> dict[tuple[str, str], Optional[str]]:
        """Map (database, table) to storage engine. Views have no engine."""
        if not databases:
            return {}

        query = (
            "SELECT TABLE_SCHEMA, TABLE_NAME, ENGINE FROM information_schema.TABLES "
            f"WHERE TABLE_SCHEMA IN ({', '.join(['%s'] * len(databases))})"
        )
        params = list(databases)
        if tables:
            query += f" AND TABLE_NAME IN ({', '.join(['%s'] * len(tables))})"
            params += tables

        results = self.execute_query(query, tuple(params))
        return {(row[0], row[1]): row[2] for row in results}

    def all_innodb(self, databases: list[str], tables: Optional[list[str]] = None) -> bool:
        """Check whether every base table of the selection uses InnoDB."""
        engines = self.get_table_engines(databases, tables)
        non_innodb = [
            f"{db}.{table}" for (db, table), engine in engines.items()
            if engine is not None and engine.upper() != 'INNODB'
        ]
        if non_innodb:
            logging.debug(f"Non-InnoDB tables: {', '.join(non_innodb)}")
        return not non_innodb
