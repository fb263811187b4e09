"""
DuckDB-backed in-memory store for flashbrain.

FlashcardStore holds the four id-keyed collections (categories, folders,
flashcards, study sessions), serves reads filtered by parent id and performs
cascading deletes. One instance is created at process start and handed to
the request handlers; tests create a fresh instance each.
"""

import duckdb
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Type

from ..exceptions import (
    CategoryOperationError,
    DatabaseError,
    FlashcardOperationError,
    FolderOperationError,
    RecordNotFoundError,
    StudySessionOperationError,
)
from ..constants import (
    DEFAULT_CARD_STYLE,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_FOLDER_COLOR,
)
from ..models import Category, Flashcard, Folder, StudySession
from ..schemas import (
    CategoryCreate,
    FlashcardCreate,
    FolderCreate,
    StudySessionCreate,
)
from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager

# --- Logging Setup ---
logger = logging.getLogger(__name__)

_CATEGORY_COLUMNS = ("name", "color")
_FOLDER_COLUMNS = ("name", "category_id", "color")
_FLASHCARD_COLUMNS = ("question", "answer", "folder_id", "card_style")


class FlashcardStore:
    """
    Facade over the in-memory database: a simple, high-level interface for
    all category, folder, flashcard and study-session operations.

    Coordinates the ConnectionHandler, SchemaManager and marshalling helpers.
    Usable as a context manager; the data disappears when it is closed.
    """

    def __init__(self) -> None:
        self._handler = ConnectionHandler()
        self._schema_manager = SchemaManager(self._handler)
        logger.info("FlashcardStore created.")

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the active connection, creating the schema the first time a
        database is opened.
        """
        conn = self._handler.get_connection()
        if self._handler.is_new_db:
            self._schema_manager.initialize_schema()
            self._handler.is_new_db = False
        return conn

    def open(self) -> "FlashcardStore":
        self.get_connection()
        return self

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "FlashcardStore":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Ensures the connection is closed on exiting the context."""
        self.close_connection()

    # --- Internal helpers ---

    @staticmethod
    def _now() -> datetime:
        return db_utils.to_db_timestamp(datetime.now(timezone.utc))

    @contextmanager
    def _transaction(
        self, error_cls: Type[DatabaseError], action: str
    ) -> Iterator[duckdb.DuckDBPyConnection]:
        """
        Run a block in one transaction on a cursor of the store connection.

        DatabaseErrors raised inside the block (e.g. RecordNotFoundError) are
        re-raised untouched after rollback; DuckDB errors are wrapped in
        `error_cls`.
        """
        conn = self.get_connection()
        with conn.cursor() as cursor:
            cursor.begin()
            try:
                yield cursor
                cursor.commit()
            except Exception as e:
                try:
                    cursor.rollback()
                    logger.info(f"Transaction rolled back during {action}.")
                except duckdb.Error as rb_err:
                    logger.error(f"Failed to rollback transaction: {rb_err}")
                if isinstance(e, DatabaseError):
                    raise
                if isinstance(e, duckdb.Error):
                    logger.error(f"Error during {action}: {e}")
                    raise error_cls(
                        f"Failed to {action}: {e}", original_exception=e
                    ) from e
                raise

    def _select(
        self,
        model_cls,
        sql: str,
        params: Sequence[Any],
        error_cls: Type[DatabaseError],
        action: str,
    ) -> List[Any]:
        conn = self.get_connection()
        try:
            cursor = conn.execute(sql, list(params))
            rows = db_utils.rows_to_dicts(cursor)
        except duckdb.Error as e:
            logger.error(f"Error during {action}: {e}")
            raise error_cls(
                f"Failed to {action}: {e}", original_exception=e
            ) from e
        return [db_utils.db_row_to_record(model_cls, row) for row in rows]

    @staticmethod
    def _ensure_exists(cursor, table: str, entity: str, record_id: int) -> None:
        found = cursor.execute(
            f"SELECT 1 FROM {table} WHERE id = $1;", [record_id]
        ).fetchone()
        if not found:
            raise RecordNotFoundError(entity, record_id)

    @staticmethod
    def _insert(cursor, sql: str, params: Sequence[Any], model_cls):
        cursor.execute(sql, list(params))
        rows = db_utils.rows_to_dicts(cursor)
        return db_utils.db_row_to_record(model_cls, rows[0])

    def _update(
        self,
        table: str,
        entity: str,
        model_cls,
        record_id: int,
        changes: Mapping[str, Any],
        allowed_columns: Sequence[str],
        error_cls: Type[DatabaseError],
        parent: Optional[tuple] = None,
    ):
        """
        Merge `changes` into an existing row.

        `parent` is (column, table, entity); when that column is being
        changed the new parent must exist.
        """
        clause, params = db_utils.build_update_clause(changes, allowed_columns)
        with self._transaction(error_cls, f"update {entity} {record_id}") as cursor:
            self._ensure_exists(cursor, table, entity, record_id)
            if parent is not None and parent[0] in changes:
                self._ensure_exists(cursor, parent[1], parent[2], changes[parent[0]])
            if not clause:
                cursor.execute(f"SELECT * FROM {table} WHERE id = $1;", [record_id])
            else:
                params.append(record_id)
                cursor.execute(
                    f"UPDATE {table} SET {clause} WHERE id = ${len(params)} RETURNING *;",
                    params,
                )
            rows = db_utils.rows_to_dicts(cursor)
        logger.info(f"Updated {entity} {record_id}: {sorted(changes)}")
        return db_utils.db_row_to_record(model_cls, rows[0])

    # --- Category Operations ---

    def create_category(self, payload: CategoryCreate) -> Category:
        """Create a category, defaulting its color."""
        sql = """
        INSERT INTO categories (name, color, created_at)
        VALUES ($1, $2, $3)
        RETURNING *;
        """
        with self._transaction(CategoryOperationError, "create category") as cursor:
            category = self._insert(
                cursor,
                sql,
                (payload.name, payload.color or DEFAULT_CATEGORY_COLOR, self._now()),
                Category,
            )
        logger.info(f"Created category {category.id} '{category.name}'")
        return category

    def get_categories(self) -> List[Category]:
        return self._select(
            Category,
            "SELECT * FROM categories ORDER BY id;",
            (),
            CategoryOperationError,
            "fetch categories",
        )

    def get_category(self, category_id: int) -> Category:
        found = self._select(
            Category,
            "SELECT * FROM categories WHERE id = $1;",
            (category_id,),
            CategoryOperationError,
            f"fetch category {category_id}",
        )
        if not found:
            raise RecordNotFoundError("Category", category_id)
        return found[0]

    def update_category(
        self, category_id: int, changes: Mapping[str, Any]
    ) -> Category:
        return self._update(
            "categories",
            "Category",
            Category,
            category_id,
            changes,
            _CATEGORY_COLUMNS,
            CategoryOperationError,
        )

    def delete_category(self, category_id: int) -> Dict[str, int]:
        """
        Delete a category together with its folders and their flashcards.

        Returns:
            Dict[str, int]: Number of removed rows per collection.
        """
        with self._transaction(
            CategoryOperationError, f"delete category {category_id}"
        ) as cursor:
            self._ensure_exists(cursor, "categories", "Category", category_id)
            cursor.execute(
                """
                DELETE FROM flashcards
                WHERE folder_id IN (SELECT id FROM folders WHERE category_id = $1)
                RETURNING id;
                """,
                [category_id],
            )
            cards_removed = len(cursor.fetchall())
            cursor.execute(
                "DELETE FROM folders WHERE category_id = $1 RETURNING id;",
                [category_id],
            )
            folders_removed = len(cursor.fetchall())
            cursor.execute("DELETE FROM categories WHERE id = $1;", [category_id])
        logger.info(
            f"Deleted category {category_id} with {folders_removed} folders "
            f"and {cards_removed} flashcards"
        )
        return {
            "categories": 1,
            "folders": folders_removed,
            "flashcards": cards_removed,
        }

    # --- Folder Operations ---

    def create_folder(self, payload: FolderCreate) -> Folder:
        """
        Create a folder in an existing category.

        Raises:
            RecordNotFoundError: If the category does not exist.
        """
        sql = """
        INSERT INTO folders (name, category_id, color, created_at)
        VALUES ($1, $2, $3, $4)
        RETURNING *;
        """
        with self._transaction(FolderOperationError, "create folder") as cursor:
            self._ensure_exists(cursor, "categories", "Category", payload.category_id)
            folder = self._insert(
                cursor,
                sql,
                (
                    payload.name,
                    payload.category_id,
                    payload.color or DEFAULT_FOLDER_COLOR,
                    self._now(),
                ),
                Folder,
            )
        logger.info(
            f"Created folder {folder.id} '{folder.name}' in category {folder.category_id}"
        )
        return folder

    def get_folders_by_category(self, category_id: int) -> List[Folder]:
        return self._select(
            Folder,
            "SELECT * FROM folders WHERE category_id = $1 ORDER BY id;",
            (category_id,),
            FolderOperationError,
            f"fetch folders for category {category_id}",
        )

    def get_folder(self, folder_id: int) -> Folder:
        found = self._select(
            Folder,
            "SELECT * FROM folders WHERE id = $1;",
            (folder_id,),
            FolderOperationError,
            f"fetch folder {folder_id}",
        )
        if not found:
            raise RecordNotFoundError("Folder", folder_id)
        return found[0]

    def update_folder(self, folder_id: int, changes: Mapping[str, Any]) -> Folder:
        return self._update(
            "folders",
            "Folder",
            Folder,
            folder_id,
            changes,
            _FOLDER_COLUMNS,
            FolderOperationError,
            parent=("category_id", "categories", "Category"),
        )

    def delete_folder(self, folder_id: int) -> Dict[str, int]:
        """Delete a folder and its flashcards."""
        with self._transaction(
            FolderOperationError, f"delete folder {folder_id}"
        ) as cursor:
            self._ensure_exists(cursor, "folders", "Folder", folder_id)
            cursor.execute(
                "DELETE FROM flashcards WHERE folder_id = $1 RETURNING id;",
                [folder_id],
            )
            cards_removed = len(cursor.fetchall())
            cursor.execute("DELETE FROM folders WHERE id = $1;", [folder_id])
        logger.info(f"Deleted folder {folder_id} with {cards_removed} flashcards")
        return {"folders": 1, "flashcards": cards_removed}

    # --- Flashcard Operations ---

    def create_flashcard(self, payload: FlashcardCreate) -> Flashcard:
        """
        Create a flashcard in an existing folder, defaulting its style.

        Raises:
            RecordNotFoundError: If the folder does not exist.
        """
        sql = """
        INSERT INTO flashcards (question, answer, folder_id, card_style, created_at)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING *;
        """
        with self._transaction(FlashcardOperationError, "create flashcard") as cursor:
            self._ensure_exists(cursor, "folders", "Folder", payload.folder_id)
            flashcard = self._insert(
                cursor,
                sql,
                (
                    payload.question,
                    payload.answer,
                    payload.folder_id,
                    payload.card_style or DEFAULT_CARD_STYLE,
                    self._now(),
                ),
                Flashcard,
            )
        logger.debug(f"Created flashcard {flashcard.id} in folder {flashcard.folder_id}")
        return flashcard

    def get_flashcards_by_folder(self, folder_id: int) -> List[Flashcard]:
        return self._select(
            Flashcard,
            "SELECT * FROM flashcards WHERE folder_id = $1 ORDER BY id;",
            (folder_id,),
            FlashcardOperationError,
            f"fetch flashcards for folder {folder_id}",
        )

    def get_flashcard(self, flashcard_id: int) -> Flashcard:
        found = self._select(
            Flashcard,
            "SELECT * FROM flashcards WHERE id = $1;",
            (flashcard_id,),
            FlashcardOperationError,
            f"fetch flashcard {flashcard_id}",
        )
        if not found:
            raise RecordNotFoundError("Flashcard", flashcard_id)
        return found[0]

    def update_flashcard(
        self, flashcard_id: int, changes: Mapping[str, Any]
    ) -> Flashcard:
        """
        Merge the supplied fields into a flashcard; omitted fields keep their
        current values.

        Raises:
            RecordNotFoundError: If the flashcard, or a new target folder,
                does not exist.
        """
        return self._update(
            "flashcards",
            "Flashcard",
            Flashcard,
            flashcard_id,
            changes,
            _FLASHCARD_COLUMNS,
            FlashcardOperationError,
            parent=("folder_id", "folders", "Folder"),
        )

    def delete_flashcard(self, flashcard_id: int) -> None:
        with self._transaction(
            FlashcardOperationError, f"delete flashcard {flashcard_id}"
        ) as cursor:
            self._ensure_exists(cursor, "flashcards", "Flashcard", flashcard_id)
            cursor.execute("DELETE FROM flashcards WHERE id = $1;", [flashcard_id])
        logger.info(f"Deleted flashcard {flashcard_id}")

    # --- Study Session Operations ---

    def create_study_session(self, payload: StudySessionCreate) -> StudySession:
        """Record a finished study pass. Sessions are never updated afterwards."""
        sql = """
        INSERT INTO study_sessions (folder_id, total_cards, completed_cards,
                                    duration, accuracy, created_at)
        VALUES ($1, $2, $3, $4, $5, $6)
        RETURNING *;
        """
        with self._transaction(
            StudySessionOperationError, "create study session"
        ) as cursor:
            self._ensure_exists(cursor, "folders", "Folder", payload.folder_id)
            session = self._insert(
                cursor,
                sql,
                (
                    payload.folder_id,
                    payload.total_cards,
                    payload.completed_cards,
                    payload.duration,
                    payload.accuracy,
                    self._now(),
                ),
                StudySession,
            )
        logger.info(
            f"Recorded study session {session.id} for folder {session.folder_id}: "
            f"{session.completed_cards}/{session.total_cards} cards, {session.accuracy}%"
        )
        return session

    def get_study_sessions_by_folder(self, folder_id: int) -> List[StudySession]:
        return self._select(
            StudySession,
            "SELECT * FROM study_sessions WHERE folder_id = $1 ORDER BY id;",
            (folder_id,),
            StudySessionOperationError,
            f"fetch study sessions for folder {folder_id}",
        )
