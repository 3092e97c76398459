"""Keyset (cursor) pagination helpers."""

import base64
import json
from collections.abc import Callable
from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from analytics_store.core.exceptions import ValidationError

T = TypeVar("T")


class CursorData(BaseModel):
    """Position of the last row of a page."""

    sort_value: datetime
    id: UUID


def encode_cursor(sort_value: datetime, id_value: UUID) -> str:
    """Encode a cursor pointing just past (sort_value, id_value)."""
    data = CursorData(sort_value=sort_value, id=id_value)
    return base64.urlsafe_b64encode(data.model_dump_json().encode()).decode()


def decode_cursor(cursor: str) -> CursorData:
    """Decode a cursor produced by :func:`encode_cursor`.

    Raises:
        ValidationError: If the cursor is malformed
    """
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return CursorData.model_validate(payload)
    except (ValueError, PydanticValidationError) as e:
        raise ValidationError.for_field("cursor", "malformed pagination cursor") from e


class CursorPage(BaseModel, Generic[T]):
    """A page of results with cursor pagination."""

    items: list[T] = Field(..., description="The items in this page")
    next_cursor: str | None = Field(
        None, description="Cursor for the next page, null if no more results"
    )
    has_more: bool = Field(..., description="Whether there are more results")


def create_cursor_page(
    items: list[Any],
    limit: int,
    get_sort_value: Callable[[Any], datetime],
    get_id: Callable[[Any], UUID],
    convert: Callable[[Any], T],
) -> CursorPage[T]:
    """Build a page from ``limit + 1`` fetched rows.

    The extra row only signals that another page exists; it is not returned.
    """
    has_more = len(items) > limit
    page_items = items[:limit]

    next_cursor = None
    if has_more and page_items:
        last_item = page_items[-1]
        next_cursor = encode_cursor(get_sort_value(last_item), get_id(last_item))

    return CursorPage(
        items=[convert(item) for item in page_items],
        next_cursor=next_cursor,
        has_more=has_more,
    )
