from datetime import datetime
from typing import Any

from bson import ObjectId

from donordrive.core.errors import BadRequest


def new_oid() -> ObjectId:
    return ObjectId()


def parse_oid(value: Any, kind: str = "") -> ObjectId:
    """Raises ValueError when ``value`` is not a 24-char hex id."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid {kind} ID format" if kind else "Invalid ID format")


def to_oid(value: Any, kind: str) -> ObjectId:
    try:
        return parse_oid(value, kind)
    except ValueError as ex:
        raise BadRequest(str(ex))


def jsonable(value: Any) -> Any:
    """
    Mongo document -> JSON-friendly structure:
      - top-level and nested ``_id`` become ``id``
      - ObjectIds become strings
      - datetimes are kept (FastAPI encodes them as ISO-8601)
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            out["id" if k == "_id" else k] = jsonable(v)
        return out
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value
