from wikicore.core.services.comments_service import CommentManager
from wikicore.core.services.pages_service import PageManager, check_lineage
from wikicore.core.services.wikis_service import WikiRecordManager

__all__ = [
    "CommentManager",
    "PageManager",
    "WikiRecordManager",
    "check_lineage",
]
