from __future__ import annotations

from wikicore.core.errors import NotFoundError
from wikicore.core.store import (
    WIKI_BY_SLUG_VIEW,
    WIKI_QUERY_DESIGN,
    Database,
    DocumentStore,
)
from wikicore.log_utils import get_logger, log_event
from wikicore.models import CurrentUser, WikiRecord

logger = get_logger("wikis")


class WikiRecordManager:
    """Wiki records kept in the main namespace, keyed by wiki id."""

    def __init__(self, store: DocumentStore, main_db: str):
        self.store = store
        self.main_db = main_db

    def main(self, cur_user: CurrentUser) -> Database:
        return self.store.select_db(self.main_db, cur_user.auth)

    def read(self, wiki: str, cur_user: CurrentUser) -> tuple[WikiRecord, str]:
        doc, rev = self.main(cur_user).read(wiki)
        record = WikiRecord.from_document(doc)
        if record.type != "wiki_record":
            raise NotFoundError(f"wiki {wiki} not found")
        return record, rev

    def update(self, wiki: str, wiki_rev: str, record: WikiRecord, cur_user: CurrentUser) -> str:
        rev = self.main(cur_user).write(record.to_document(), wiki, wiki_rev)
        log_event(logger, "wiki record updated", wiki=wiki, rev=rev)
        return rev

    def resolve_slug(self, wiki_slug: str, cur_user: CurrentUser) -> str:
        result = self.main(cur_user).query_view(WIKI_QUERY_DESIGN, WIKI_BY_SLUG_VIEW, key=wiki_slug)
        if not result.rows:
            raise NotFoundError(f"no wiki with slug {wiki_slug}")
        return result.rows[0].id
