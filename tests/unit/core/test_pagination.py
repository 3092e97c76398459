"""Tests for cursor pagination helpers."""

import base64
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest

from analytics_store.core.exceptions import ValidationError
from analytics_store.core.pagination import create_cursor_page, decode_cursor, encode_cursor


@dataclass
class Row:
    id: uuid.UUID
    start_time: datetime


def _rows(count: int) -> list[Row]:
    base = datetime(2026, 1, 1, tzinfo=UTC)
    return [Row(uuid.uuid4(), base - timedelta(minutes=i)) for i in range(count)]


class TestCursorEncoding:
    def test_decode_returns_encoded_position(self) -> None:
        row_id = uuid.uuid4()
        when = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)

        data = decode_cursor(encode_cursor(when, row_id))

        assert data.sort_value == when
        assert data.id == row_id

    @pytest.mark.parametrize(
        "cursor",
        [
            "not-base64!!",
            base64.urlsafe_b64encode(b"not json").decode(),
            base64.urlsafe_b64encode(b'{"sort_value": "x"}').decode(),
        ],
    )
    def test_malformed_cursor_rejected(self, cursor: str) -> None:
        with pytest.raises(ValidationError):
            decode_cursor(cursor)


class TestCreateCursorPage:
    def test_last_page_has_no_cursor(self) -> None:
        page = create_cursor_page(
            _rows(3), 5, lambda r: r.start_time, lambda r: r.id, lambda r: r.id
        )

        assert len(page.items) == 3
        assert page.has_more is False
        assert page.next_cursor is None

    def test_extra_row_signals_more(self) -> None:
        rows = _rows(4)

        page = create_cursor_page(rows, 3, lambda r: r.start_time, lambda r: r.id, lambda r: r.id)

        assert page.items == [r.id for r in rows[:3]]
        assert page.has_more is True
        assert page.next_cursor is not None
        cursor = decode_cursor(page.next_cursor)
        assert cursor.id == rows[2].id
        assert cursor.sort_value == rows[2].start_time
