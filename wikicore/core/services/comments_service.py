from __future__ import annotations

import uuid
from datetime import datetime, timezone

from wikicore.core.auth import CommentGate
from wikicore.core.errors import ForbiddenError, NotFoundError
from wikicore.core.markdown import MarkdownRenderer
from wikicore.core.store import (
    COMMENTS_DESIGN,
    COMMENTS_VIEW,
    Database,
    DocumentStore,
    page_params,
    wiki_db_name,
)
from wikicore.log_utils import get_logger, log_event
from wikicore.models import Comment, CommentIndexPage, CurrentUser

logger = get_logger("comments")


class CommentManager:
    def __init__(self, store: DocumentStore, renderer: MarkdownRenderer, gate: CommentGate):
        self.store = store
        self.renderer = renderer
        self.gate = gate

    def wiki_db(self, wiki: str, cur_user: CurrentUser) -> Database:
        return self.store.select_db(wiki_db_name(wiki), cur_user.auth)

    def save_comment(
        self,
        wiki: str,
        page_id: str,
        comment: Comment,
        comment_id: str,
        comment_rev: str,
        cur_user: CurrentUser,
    ) -> str:
        if comment_rev and not self.gate.allowed_to_update_comment(wiki, comment_id, cur_user):
            raise ForbiddenError("Not Authorized")

        comment.content.formatted = self.renderer.render(comment.content.raw)

        now = datetime.now(timezone.utc)
        if comment_rev:
            existing, _ = self.read_comment(wiki, comment_id, cur_user)
            comment.author = existing.author
            comment.created_time = existing.created_time
            comment.modified_time = now
        else:
            comment_id = comment_id or uuid.uuid4().hex
            comment.author = cur_user.username
            comment.created_time = now
        comment.id = comment_id
        comment.type = "comment"
        comment.page_id = page_id

        rev = self.wiki_db(wiki, cur_user).write(comment.to_document(), comment_id, comment_rev)
        comment.rev = rev
        log_event(
            logger,
            "comment saved",
            wiki=wiki,
            page_id=page_id,
            comment_id=comment_id,
            rev=rev,
            user=cur_user.username,
        )
        return rev

    def read_comment(self, wiki: str, comment_id: str, cur_user: CurrentUser) -> tuple[Comment, str]:
        doc, rev = self.wiki_db(wiki, cur_user).read(comment_id)
        comment = Comment.from_document(doc)
        if comment.type != "comment":
            raise NotFoundError(f"comment {comment_id} not found")
        return comment, rev

    def delete_comment(self, wiki: str, comment_id: str, cur_user: CurrentUser) -> str:
        if not self.gate.allowed_to_update_comment(wiki, comment_id, cur_user):
            raise ForbiddenError("Not Authorized")
        # re-read for the freshest revision token
        _, comment_rev = self.read_comment(wiki, comment_id, cur_user)
        rev = self.wiki_db(wiki, cur_user).delete(comment_id, comment_rev)
        log_event(logger, "comment deleted", wiki=wiki, comment_id=comment_id, user=cur_user.username)
        return rev

    def get_comments(
        self, wiki: str, page_id: str, page_num: int, num_per_page: int, cur_user: CurrentUser
    ) -> CommentIndexPage:
        paging = page_params(page_num, num_per_page)
        result = self.wiki_db(wiki, cur_user).query_view(
            COMMENTS_DESIGN,
            COMMENTS_VIEW,
            startkey=[page_id],
            endkey=[page_id, {}],
            include_docs=True,
            **paging,
        )
        return CommentIndexPage(
            total_rows=result.total_rows,
            offset=result.offset,
            rows=[Comment.from_document(row.doc) for row in result.rows if row.doc is not None],
        )
