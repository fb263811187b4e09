import duckdb
import logging
from typing import Optional

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


class ConnectionHandler:
    """Manages the lifecycle of an in-memory DuckDB connection.

    Every handler owns its own database: data lives exactly as long as the
    connection and is never written to disk.
    """

    def __init__(self) -> None:
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self.is_new_db: bool = False

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Provide the active DuckDB connection, opening one if none exists.

        Sets `self.is_new_db` to True whenever a fresh database was created,
        so the caller knows the schema must be initialized.

        Raises:
            DatabaseConnectionError: If DuckDB fails to establish the connection.
        """
        if not self.is_open:
            try:
                self._connection = duckdb.connect(database=IN_MEMORY)
                self.is_new_db = True
                logger.info("Opened in-memory DuckDB database.")
            except duckdb.Error as e:
                raise DatabaseConnectionError(
                    f"Failed to connect to database: {e}", original_exception=e
                ) from e
        return self._connection

    def close_connection(self) -> None:
        """Closes the connection, discarding all data held in it."""
        if self._connection:
            try:
                self._connection.close()
                logger.info("In-memory database closed; its data is gone.")
            except duckdb.Error as e:
                logger.error(f"Error closing the database connection: {e}")
            finally:
                self._connection = None
                self.is_new_db = False

    def __enter__(self) -> duckdb.DuckDBPyConnection:
        return self.get_connection()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()
