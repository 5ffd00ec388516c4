from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from wikicore.core.errors import BadRequestError


@dataclass
class ViewRow:
    id: str
    key: Any = None
    value: Any = None
    doc: dict[str, Any] | None = None


@dataclass
class ViewResult:
    total_rows: int = 0
    offset: int = 0
    rows: list[ViewRow] = field(default_factory=list)


@dataclass
class MultiReadRow:
    id: str
    doc: dict[str, Any] | None = None
    error: str | None = None


class Database(Protocol):
    """One revisioned namespace of the document store.

    Implementations raise the typed errors from ``wikicore.core.errors``:
    ``NotFoundError`` for missing ids and ``ConflictError`` for stale
    revision tokens.
    """

    name: str

    def read(self, doc_id: str) -> tuple[dict[str, Any], str]: ...

    def write(self, doc: dict[str, Any], doc_id: str, rev: str = "") -> str: ...

    def delete(self, doc_id: str, rev: str) -> str: ...

    def multi_read(self, ids: Sequence[str]) -> list[MultiReadRow]: ...

    def query_view(self, design: str, view: str, **params: Any) -> ViewResult: ...


class DocumentStore(Protocol):
    def select_db(self, name: str, auth: Any = None) -> Database: ...


# Design documents and views the core queries.
PAGES_DESIGN = "wikit"
INDEX_VIEW = "getIndex"
CHILD_INDEX_VIEW = "getChildIndex"
PAGE_BY_SLUG_VIEW = "getPageBySlug"
HISTORY_VIEW = "getHistory"
COMMENTS_DESIGN = "wikit_comments"
COMMENTS_VIEW = "getCommentsForPage"
WIKI_QUERY_DESIGN = "wiki_query"
WIKI_BY_SLUG_VIEW = "getWikiBySlug"


def wiki_db_name(wiki_id: str) -> str:
    return "wiki_" + wiki_id


def page_params(page_num: int, num_per_page: int) -> dict[str, int]:
    """View paging for zero-based page numbers."""
    if page_num < 0:
        raise BadRequestError("page number must not be negative")
    if num_per_page <= 0:
        raise BadRequestError("page size must be positive")
    return {"skip": page_num * num_per_page, "limit": num_per_page}


__all__ = [
    "ViewRow",
    "ViewResult",
    "MultiReadRow",
    "Database",
    "DocumentStore",
    "page_params",
    "wiki_db_name",
]
