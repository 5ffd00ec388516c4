"""Breadcrumb trails derived from a page's stored lineage.

A page stores its ancestors root first, without its own id. The trail of
a page is that lineage followed by the page itself; a crumb's parent is
the entry before its own id in its trail.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wikicore.log_utils import get_logger, log_event
from wikicore.models import Breadcrumb, CurrentUser, Page

if TYPE_CHECKING:
    from wikicore.core.services.pages_service import PageManager

logger = get_logger("lineage")


def trail_of(page: Page, page_id: str) -> list[str]:
    return list(page.lineage) + [page_id]


def parent_in_trail(trail: list[str]) -> str:
    return trail[-2] if len(trail) >= 2 else ""


class BreadcrumbBuilder:
    def __init__(self, pages: PageManager):
        self.pages = pages

    def get_breadcrumbs(self, wiki: str, page_id: str, cur_user: CurrentUser) -> list[Breadcrumb]:
        page, _ = self.pages.read(wiki, page_id, cur_user)
        trail = trail_of(page, page_id)

        crumbs: list[Breadcrumb] = []
        if len(trail) > 1:
            db = self.pages.wiki_db(wiki, cur_user)
            for i, row in enumerate(db.multi_read(trail[0 : len(trail) - 1])):
                if row.error or row.doc is None:
                    # the slot stays so every later parent is still in the trail
                    log_event(
                        logger,
                        "breadcrumb ancestor missing",
                        level=logging.WARNING,
                        wiki=wiki,
                        page_id=page_id,
                        ancestor=row.id,
                        error=row.error,
                    )
                    crumbs.append(
                        Breadcrumb(
                            name="",
                            page_id=row.id,
                            wiki_id=wiki,
                            parent=parent_in_trail(trail[: i + 1]),
                        )
                    )
                    continue
                crumbs.append(self._crumb(wiki, row.id, Page.from_document(row.doc)))
        crumbs.append(self._crumb(wiki, page_id, page))
        return crumbs

    @staticmethod
    def _crumb(wiki: str, page_id: str, page: Page) -> Breadcrumb:
        return Breadcrumb(
            name=page.title,
            page_id=page_id,
            wiki_id=wiki,
            parent=parent_in_trail(trail_of(page, page_id)),
        )
