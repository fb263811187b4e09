"""
Utility functions for data marshalling between Pydantic models and database rows.
This module keeps the store's SQL free of conversion details.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..exceptions import MarshallingError

RecordT = TypeVar("RecordT", bound=BaseModel)


def rows_to_dicts(cursor) -> List[Dict[str, Any]]:
    """Convert cursor results to a list of dictionaries keyed by column name."""
    rows = cursor.fetchall()
    if not rows or cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


def to_db_timestamp(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC for a TIMESTAMP column.

    Naive input is assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def db_row_to_record(model_cls: Type[RecordT], row_dict: Mapping[str, Any]) -> RecordT:
    """
    Create a record model from a database row dictionary.

    TIMESTAMP columns come back naive; they are re-labelled as UTC before
    validation.

    Raises:
        MarshallingError: If the row cannot be validated into `model_cls`.
    """
    data = dict(row_dict)
    created_at = data.get("created_at")
    if isinstance(created_at, datetime) and created_at.tzinfo is None:
        data["created_at"] = created_at.replace(tzinfo=timezone.utc)
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse {model_cls.__name__} from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def build_update_clause(
    changes: Mapping[str, Any], allowed_columns: Sequence[str]
) -> Tuple[str, List[Any]]:
    """
    Build the SET clause and positional parameters for a partial update.

    Only columns in `allowed_columns` may be written; anything else is a
    programming error and raises MarshallingError.

    Returns:
        (clause, params): e.g. ("answer = $1, card_style = $2", ["new", "blue"]).
    """
    unknown = set(changes) - set(allowed_columns)
    if unknown:
        raise MarshallingError(
            f"Refusing to update unknown columns: {sorted(unknown)}"
        )
    assignments = []
    params: List[Any] = []
    for column in allowed_columns:
        if column in changes:
            params.append(changes[column])
            assignments.append(f"{column} = ${len(params)}")
    return ", ".join(assignments), params
