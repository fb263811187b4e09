import duckdb
import logging

from .connection import ConnectionHandler
from . import schema
from ..exceptions import SchemaInitializationError

logger = logging.getLogger(__name__)


class SchemaManager:
    """Creates the store's id sequences and tables."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler

    def initialize_schema(self) -> None:
        """
        Initializes the schema inside a transaction. Safe to call more than
        once; every statement is IF NOT EXISTS.
        """
        conn = self._handler.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.execute(schema.DB_SCHEMA_SQL)
                cursor.commit()
            logger.info("Store schema initialized (or already exists).")
        except duckdb.Error as e:
            logger.error(f"Error initializing store schema: {e}")
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e
