"""
Shared helpers for realtime-database repositories.
"""

from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from core.exceptions import DataIntegrityError
from db.realtime import RealtimeDatabase

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def collection_values(data: Any) -> list[dict[str, Any]]:
    """
    Values of a keyed collection snapshot.

    Firebase returns a keyed object, an array (when keys are 0..n, with gaps
    as nulls) or null for an empty collection.
    """
    if data is None:
        return []
    if isinstance(data, dict):
        values = list(data.values())
    elif isinstance(data, list):
        values = [item for item in data if item is not None]
    else:
        raise DataIntegrityError("Collection snapshot is not a keyed object")
    return [value for value in values if isinstance(value, dict)]


def parse_collection(
    data: Any,
    model: type[ModelT],
    collection: str,
    skip_invalid: bool = False,
) -> list[ModelT]:
    """
    Validate every record of a collection snapshot.

    With ``skip_invalid`` a record that fails validation is logged and left
    out; otherwise it fails the whole read.
    """
    records = []
    for raw in collection_values(data):
        try:
            records.append(model.model_validate(raw))
        except ValidationError as e:
            if skip_invalid:
                logger.warning("malformed_record_skipped", collection=collection, errors=e.error_count())
                continue
            logger.error("malformed_record", collection=collection, errors=e.error_count())
            raise DataIntegrityError(f"Malformed record in {collection}") from e
    return records


class RealtimeRepository:
    """Base repository bound to a realtime database client."""

    def __init__(self, database: RealtimeDatabase):
        self.database = database
