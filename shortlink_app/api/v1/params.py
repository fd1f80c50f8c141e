from typing import List, Optional

from fastapi import Query

from shortlink_app.errors import InvalidInputError


def parse_ids(ids: Optional[str] = Query(None, description="Comma separated ids, e.g. 1,2,3")) -> List[int]:
    """Parse the ``ids`` query parameter of batch deletes"""
    if not ids:
        raise InvalidInputError("ids cannot be empty")
    try:
        parsed = [int(part) for part in ids.split(",") if part.strip()]
    except ValueError as e:
        raise InvalidInputError(f"Invalid ids: {ids}") from e
    if not parsed:
        raise InvalidInputError("ids cannot be empty")
    return parsed
