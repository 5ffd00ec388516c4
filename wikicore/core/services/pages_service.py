from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from wikicore.core.errors import BadRequestError, ConflictError, NotFoundError, WikiCoreError
from wikicore.core.markdown import MarkdownRenderer
from wikicore.core.services.wikis_service import WikiRecordManager
from wikicore.core.slugs import is_valid_slug, slug_from_title
from wikicore.core.store import (
    CHILD_INDEX_VIEW,
    HISTORY_VIEW,
    INDEX_VIEW,
    PAGE_BY_SLUG_VIEW,
    PAGES_DESIGN,
    Database,
    DocumentStore,
    ViewResult,
    page_params,
    wiki_db_name,
)
from wikicore.log_utils import get_logger, log_event
from wikicore.models import (
    CurrentUser,
    HistoryEntry,
    HistoryPage,
    Page,
    PageIndex,
    PageIndexEntry,
)

logger = get_logger("pages")


def _page_index(result: ViewResult) -> PageIndex:
    return PageIndex(
        total_rows=result.total_rows,
        offset=result.offset,
        rows=[PageIndexEntry.model_validate({**(row.value or {}), "id": row.id}) for row in result.rows],
    )


def check_lineage(page_id: str, lineage: list[str]) -> None:
    if page_id in lineage:
        raise BadRequestError("a page cannot be its own ancestor")
    if len(set(lineage)) != len(lineage):
        raise BadRequestError("lineage contains a cycle")


class PageManager:
    def __init__(self, store: DocumentStore, renderer: MarkdownRenderer, wikis: WikiRecordManager):
        self.store = store
        self.renderer = renderer
        self.wikis = wikis

    def wiki_db(self, wiki: str, cur_user: CurrentUser) -> Database:
        return self.store.select_db(wiki_db_name(wiki), cur_user.auth)

    def index(self, wiki: str, cur_user: CurrentUser) -> PageIndex:
        return _page_index(self.wiki_db(wiki, cur_user).query_view(PAGES_DESIGN, INDEX_VIEW))

    def child_index(self, wiki: str, page_id: str, cur_user: CurrentUser) -> PageIndex:
        db = self.wiki_db(wiki, cur_user)
        return _page_index(db.query_view(PAGES_DESIGN, CHILD_INDEX_VIEW, key=page_id))

    def read(self, wiki: str, page_id: str, cur_user: CurrentUser) -> tuple[Page, str]:
        doc, rev = self.wiki_db(wiki, cur_user).read(page_id)
        page = Page.from_document(doc)
        if page.type != "page":
            raise NotFoundError(f"page {page_id} not found")
        return page, rev

    def read_by_slug(self, wiki_slug: str, page_slug: str, cur_user: CurrentUser) -> tuple[str, str, Page]:
        """Returns the wiki id, the page revision and the page."""
        wiki_id = self.wikis.resolve_slug(wiki_slug, cur_user)
        db = self.wiki_db(wiki_id, cur_user)
        result = db.query_view(PAGES_DESIGN, PAGE_BY_SLUG_VIEW, key=page_slug, include_docs=True)
        if not result.rows:
            raise NotFoundError(f"no page with slug {page_slug} in wiki {wiki_id}")
        row = result.rows[0]
        doc = row.doc if row.doc is not None else db.read(row.id)[0]
        page = Page.from_document(doc)
        return wiki_id, page.rev, page

    def save(self, wiki: str, page: Page, page_id: str, page_rev: str, cur_user: CurrentUser) -> str:
        """Create (empty ``page_rev``) or update a page. Returns the new revision."""
        page.content.formatted = self.renderer.render(page.content.raw)

        db = self.wiki_db(wiki, cur_user)
        if not page_id:
            if page_rev:
                raise BadRequestError("a revision was given for a page without an id")
            page_id = uuid.uuid4().hex
        check_lineage(page_id, page.lineage)

        previous: Page | None = None
        if page_rev:
            previous, current_rev = self.read(wiki, page_id, cur_user)
            if current_rev != page_rev:
                raise ConflictError("Document update conflict.", {"page_id": page_id})
            if not previous.is_live:
                raise BadRequestError("cannot modify a historical revision")

        page.slug = self._resolve_slug(db, page, page_id, previous)
        page.id = page_id
        page.type = "page"
        page.owning_page = page_id
        page.editor = cur_user.username
        page.timestamp = datetime.now(timezone.utc)

        # history first: a failed snapshot leaves the live page untouched
        if previous is not None:
            self._snapshot(db, wiki, previous)

        rev = db.write(page.to_document(), page_id, page_rev)
        page.rev = rev
        log_event(logger, "page saved", wiki=wiki, page_id=page_id, rev=rev, editor=page.editor)
        return rev

    def delete(self, wiki: str, page_id: str, page_rev: str, cur_user: CurrentUser) -> str:
        page, _ = self.read(wiki, page_id, cur_user)
        if page.owning_page != page_id:
            raise BadRequestError("cannot delete a historical revision")

        # Clearing the home page and deleting the page are two separate
        # writes; a failed delete leaves the pointer cleared.
        record, record_rev = self.wikis.read(wiki, cur_user)
        if record.home_page_id == page_id:
            record.home_page_id = ""
            self.wikis.update(wiki, record_rev, record, cur_user)
            log_event(logger, "home page cleared", wiki=wiki, page_id=page_id)

        rev = self.wiki_db(wiki, cur_user).delete(page_id, page_rev)
        log_event(logger, "page deleted", wiki=wiki, page_id=page_id, rev=rev)
        return rev

    def get_history(
        self, wiki: str, page_id: str, page_num: int, num_per_page: int, cur_user: CurrentUser
    ) -> HistoryPage:
        paging = page_params(page_num, num_per_page)
        result = self.wiki_db(wiki, cur_user).query_view(
            PAGES_DESIGN,
            HISTORY_VIEW,
            startkey=[page_id, {}],
            endkey=[page_id],
            descending=True,
            **paging,
        )
        return HistoryPage(
            total_rows=result.total_rows,
            offset=result.offset,
            rows=[
                HistoryEntry.model_validate({**(row.value or {}), "documentId": row.id})
                for row in result.rows
            ],
        )

    def _resolve_slug(self, db: Database, page: Page, page_id: str, previous: Page | None) -> str:
        def taken(candidate: str) -> bool:
            result = db.query_view(PAGES_DESIGN, PAGE_BY_SLUG_VIEW, key=candidate)
            return any(row.id != page_id for row in result.rows)

        slug = (page.slug or "").strip()
        if not slug and previous is not None:
            slug = previous.slug
        if not slug:
            return slug_from_title(page.title, taken)
        if not is_valid_slug(slug):
            raise BadRequestError(f"slug {slug!r} is not URL safe")
        if taken(slug):
            raise ConflictError(f"slug {slug!r} is already in use")
        return slug

    def _snapshot(self, db: Database, wiki: str, previous: Page) -> str:
        snapshot_id = uuid.uuid4().hex
        try:
            db.write(previous.to_document(), snapshot_id)
        except WikiCoreError as e:
            log_event(
                logger,
                "history snapshot failed",
                level=logging.ERROR,
                wiki=wiki,
                page_id=previous.id,
                error=str(e),
            )
            raise
        return snapshot_id
