"""
Defines the store schema as a SQL string constant.

Each entity has its own sequence, so ids start at 1, grow monotonically and
are never handed out twice, regardless of deletes. Parent references are
enforced by FlashcardStore rather than by FOREIGN KEY clauses: DuckDB
implements UPDATE as delete+insert, which would make renaming a category
that still owns folders violate the constraint. Parent-id columns carry no
secondary index for the same reason: updating an indexed column rewrites the
row.
"""

DB_SCHEMA_SQL = """
    CREATE SEQUENCE IF NOT EXISTS category_id_seq START 1;
    CREATE SEQUENCE IF NOT EXISTS folder_id_seq START 1;
    CREATE SEQUENCE IF NOT EXISTS flashcard_id_seq START 1;
    CREATE SEQUENCE IF NOT EXISTS study_session_id_seq START 1;

    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY DEFAULT nextval('category_id_seq'),
        name VARCHAR NOT NULL,
        color VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS folders (
        id INTEGER PRIMARY KEY DEFAULT nextval('folder_id_seq'),
        name VARCHAR NOT NULL,
        category_id INTEGER NOT NULL,
        color VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS flashcards (
        id INTEGER PRIMARY KEY DEFAULT nextval('flashcard_id_seq'),
        question VARCHAR NOT NULL,
        answer VARCHAR NOT NULL,
        folder_id INTEGER NOT NULL,
        card_style VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS study_sessions (
        id INTEGER PRIMARY KEY DEFAULT nextval('study_session_id_seq'),
        folder_id INTEGER NOT NULL,
        total_cards INTEGER NOT NULL CHECK (total_cards >= 0),
        completed_cards INTEGER NOT NULL CHECK (completed_cards >= 0),
        duration INTEGER NOT NULL CHECK (duration >= 0),
        accuracy INTEGER NOT NULL CHECK (accuracy >= 0 AND accuracy <= 100),
        created_at TIMESTAMP NOT NULL
    );
"""
