from typing import Optional, Union


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class CategoryOperationError(DatabaseError):
    """Raised for errors during category operations (CRUD)."""

    pass


class FolderOperationError(DatabaseError):
    """Raised for errors during folder operations (CRUD)."""

    pass


class FlashcardOperationError(DatabaseError):
    """Raised for errors during flashcard operations (CRUD)."""

    pass


class StudySessionOperationError(DatabaseError):
    """Indicates an error during a study-session database operation."""

    pass


class RecordNotFoundError(DatabaseError):
    """Raised when a record with the requested id does not exist."""

    def __init__(self, entity: str, record_id: Union[int, str]):
        super().__init__(f"{entity} with id {record_id} not found")
        self.entity = entity
        self.record_id = record_id


class GenerationError(Exception):
    """Base exception for AI flashcard generation failures."""

    pass


class GenerationConfigError(GenerationError):
    """Raised when the generation endpoint is not configured."""

    pass


class UpstreamError(GenerationError):
    """Raised when the external completion API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ContentError(GenerationError):
    """Raised when the completion response holds no usable JSON array."""

    pass
