from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class StoredModel(BaseModel):
    """Base for records kept in the document store.

    Fields are aliased to the camelCase keys the store holds, and unknown
    keys (``_id``, ``_rev``, design fields) are ignored on read.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude={"id", "rev"})

    @classmethod
    def from_document(cls, doc: dict[str, Any]):
        data = dict(doc)
        data.setdefault("id", doc.get("_id", ""))
        data.setdefault("rev", doc.get("_rev", ""))
        return cls.model_validate(data)


class PageContent(BaseModel):
    raw: str = Field("", description="Author supplied Markdown")
    formatted: str = Field("", description="Sanitized HTML rendered from raw")


class Page(StoredModel):
    id: str = ""
    rev: str = ""
    type: str = "page"
    title: str = ""
    slug: str = ""
    content: PageContent = Field(default_factory=PageContent)
    lineage: list[str] = Field(default_factory=list, description="Ancestor ids, root first")
    owning_page: str = Field("", alias="owningPage")
    editor: str = ""
    timestamp: Optional[datetime] = None

    @property
    def parent(self) -> str:
        return self.lineage[-1] if self.lineage else ""

    @property
    def is_live(self) -> bool:
        return bool(self.id) and self.owning_page == self.id


class Comment(StoredModel):
    id: str = ""
    rev: str = ""
    type: str = "comment"
    page_id: str = Field("", alias="owningPage")
    author: str = ""
    created_time: Optional[datetime] = Field(None, alias="createdTime")
    modified_time: Optional[datetime] = Field(None, alias="modifiedTime")
    content: PageContent = Field(default_factory=PageContent)


class WikiRecord(StoredModel):
    id: str = ""
    rev: str = ""
    type: str = "wiki_record"
    name: str = ""
    slug: str = ""
    description: str = ""
    home_page_id: str = Field("", alias="homePageId")


class Breadcrumb(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    page_id: str = Field(..., alias="pageId")
    wiki_id: str = Field(..., alias="wikiId")
    parent: str = ""


class PageIndexEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    slug: str = ""
    lineage: list[str] = Field(default_factory=list)
    editor: str = ""
    timestamp: Optional[datetime] = None


class PageIndex(BaseModel):
    total_rows: int = 0
    offset: int = 0
    rows: list[PageIndexEntry] = Field(default_factory=list)


class HistoryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    document_id: str = Field(..., alias="documentId")
    title: str = ""
    editor: str = ""
    timestamp: Optional[datetime] = None
    content_size: int = Field(0, alias="contentSize")


class HistoryPage(BaseModel):
    total_rows: int = 0
    offset: int = 0
    rows: list[HistoryEntry] = Field(default_factory=list)


class CommentIndexPage(BaseModel):
    total_rows: int = 0
    offset: int = 0
    rows: list[Comment] = Field(default_factory=list)


class User(BaseModel):
    username: str
    roles: list[str] = Field(default_factory=list)


class CurrentUser(BaseModel):
    """Caller identity handed to every operation.

    ``auth`` is whatever credential the document store accepts for this
    caller (for CouchDB: a ``(name, password)`` pair or an ``httpx.Auth``).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    auth: Any = None
    user: User

    @property
    def username(self) -> str:
        return self.user.username

    @property
    def roles(self) -> list[str]:
        return self.user.roles
