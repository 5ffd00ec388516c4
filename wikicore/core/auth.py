from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError

from wikicore.core.errors import WikiCoreError
from wikicore.core.store import DocumentStore, wiki_db_name
from wikicore.log_utils import get_logger, log_event
from wikicore.models import Comment, CurrentUser

logger = get_logger("auth")

MASTER_ROLE = "master"


def admin_role(namespace: str) -> str:
    return f"{namespace}:admin"


def master_role() -> str:
    return MASTER_ROLE


def has_role(roles: Iterable[str] | None, role: str) -> bool:
    return role in (roles or ())


class CommentGate:
    """Decides whether a principal may update or delete a comment.

    Evaluated fresh on every call so the answer reflects the caller's
    current roles. A comment that cannot be fetched is never editable.
    """

    def __init__(self, store: DocumentStore, main_db: str):
        self.store = store
        self.main_db = main_db

    def is_admin(self, wiki: str, cur_user: CurrentUser) -> bool:
        roles = cur_user.roles
        return (
            has_role(roles, admin_role(wiki))
            or has_role(roles, admin_role(self.main_db))
            or has_role(roles, master_role())
        )

    def allowed_to_update_comment(self, wiki: str, comment_id: str, cur_user: CurrentUser) -> bool:
        db = self.store.select_db(wiki_db_name(wiki), cur_user.auth)
        try:
            doc, _ = db.read(comment_id)
            comment = Comment.from_document(doc)
        except (WikiCoreError, ValidationError) as e:
            log_event(
                logger,
                "comment gate fetch failed",
                level=logging.WARNING,
                wiki=wiki,
                comment_id=comment_id,
                error=str(e),
            )
            return False
        if comment.type != "comment":
            return False
        is_author = bool(comment.author) and comment.author == cur_user.username
        if is_author or self.is_admin(wiki, cur_user):
            return True
        log_event(
            logger,
            "comment update denied",
            wiki=wiki,
            comment_id=comment_id,
            user=cur_user.username,
        )
        return False
