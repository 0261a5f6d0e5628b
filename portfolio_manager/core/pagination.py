"""
Cursor paging over DynamoDB queries and scans.

A page carries the ``last_evaluated_key`` DynamoDB reports for it. Over HTTP
that key travels as an opaque cursor: URL-safe base64 of its JSON form, handed
back in the ``X-Next-Cursor`` response header and accepted as ``cursor``.
"""

import base64
import json
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Generic, List, Optional, TypeVar

from fastapi import Query, Response

from portfolio_manager.core.exceptions import ValidationError

T = TypeVar("T")

NEXT_CURSOR_HEADER = "X-Next-Cursor"
MAX_PAGE_SIZE = 1000

LastEvaluatedKey = Dict[str, Dict[str, Any]]

PageLimit = Annotated[
    Optional[int],
    Query(ge=1, le=MAX_PAGE_SIZE, description="Maximum number of records to return"),
]
PageCursor = Annotated[
    Optional[str],
    Query(max_length=2048, description=f"Cursor from a previous page's {NEXT_CURSOR_HEADER} header"),
]


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    last_evaluated_key: Optional[LastEvaluatedKey] = None

    @property
    def next_cursor(self) -> Optional[str]:
        return encode_cursor(self.last_evaluated_key)


def page_of(results) -> Page:
    """Drain a PynamoDB result iterator into a page.

    The iterator stops at its ``limit``; its ``last_evaluated_key`` then points
    at the last item returned, or is None once the table has been read through.
    """
    items = list(results)
    return Page(items=items, last_evaluated_key=results.last_evaluated_key)


def encode_cursor(key: Optional[LastEvaluatedKey]) -> Optional[str]:
    if not key:
        return None
    raw = json.dumps(key, sort_keys=True, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode()


def decode_cursor(cursor: Optional[str]) -> Optional[LastEvaluatedKey]:
    """
    Turn a client cursor back into a ``last_evaluated_key``.

    Raises:
        ValidationError: The cursor was not produced by this API.
    """
    if not cursor:
        return None
    try:
        key = json.loads(base64.urlsafe_b64decode(cursor.encode()))
    except ValueError:
        raise ValidationError("Invalid page cursor")
    if not isinstance(key, dict) or not all(isinstance(v, dict) for v in key.values()):
        raise ValidationError("Invalid page cursor")
    return key


def set_next_cursor(response: Response, page: Page) -> None:
    cursor = page.next_cursor
    if cursor is not None:
        response.headers[NEXT_CURSOR_HEADER] = cursor
