from __future__ import annotations

from dataclasses import dataclass

from wikicore.config import Settings
from wikicore.core.auth import CommentGate
from wikicore.core.lineage import BreadcrumbBuilder
from wikicore.core.markdown import MarkdownRenderer
from wikicore.core.services import CommentManager, PageManager, WikiRecordManager
from wikicore.core.store import DocumentStore
from wikicore.couchdb_client import CouchDocumentStore
from wikicore.log_utils import setup_logging


@dataclass
class WikiCore:
    store: DocumentStore
    renderer: MarkdownRenderer
    wikis: WikiRecordManager
    pages: PageManager
    comments: CommentManager
    breadcrumbs: BreadcrumbBuilder

    def close(self) -> None:
        self.renderer.shutdown()
        close = getattr(self.store, "close", None)
        if callable(close):
            close()


def create_core(
    settings: Settings | None = None,
    store: DocumentStore | None = None,
    renderer: MarkdownRenderer | None = None,
) -> WikiCore:
    settings = settings or Settings.from_env()
    setup_logging(settings.log.level)

    store = store or CouchDocumentStore.from_settings(settings.database)
    renderer = renderer or MarkdownRenderer(workers=settings.renderer.workers)
    main_db = settings.database.main_db

    wikis = WikiRecordManager(store, main_db)
    pages = PageManager(store, renderer, wikis)
    return WikiCore(
        store=store,
        renderer=renderer,
        wikis=wikis,
        pages=pages,
        comments=CommentManager(store, renderer, CommentGate(store, main_db)),
        breadcrumbs=BreadcrumbBuilder(pages),
    )
