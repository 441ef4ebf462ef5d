"""JSON encoding for evidence payloads and policy input documents."""

from __future__ import annotations

import dataclasses
import datetime
import enum

from pydantic import BaseModel


def json_default(obj: object) -> object:
    """``default=`` hook for ``json.dumps``.

    Dataclasses are flattened with ``asdict``; nested enums and datetimes come
    back through this hook on the next pass.
    """
    if isinstance(obj, datetime.datetime):
        return obj.isoformat().replace("+00:00", "Z")
    if isinstance(obj, datetime.date):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if isinstance(obj, tuple):
        return list(obj)
    return str(obj)
