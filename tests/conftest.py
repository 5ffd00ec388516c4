import copy
import uuid

import pytest

from wikicore.core.auth import CommentGate
from wikicore.core.errors import ConflictError, NotFoundError
from wikicore.core.lineage import BreadcrumbBuilder
from wikicore.core.markdown import MarkdownRenderer
from wikicore.core.services import CommentManager, PageManager, WikiRecordManager
from wikicore.core.store import MultiReadRow, ViewResult, ViewRow
from wikicore.models import CurrentUser, User, WikiRecord

MAIN_DB = "wikifeat_main_db"


def _collate(key):
    # CouchDB collation for the key shapes used here: null < string < array < object
    if key is None:
        return (0,)
    if isinstance(key, str):
        return (1, key)
    if isinstance(key, list):
        return (2, tuple(_collate(k) for k in key))
    return (3,)


def _live_page(doc):
    return doc.get("type") == "page" and doc.get("owningPage") == doc["_id"]


def _index_value(doc):
    return {
        "title": doc.get("title", ""),
        "slug": doc.get("slug", ""),
        "lineage": doc.get("lineage", []),
        "editor": doc.get("editor", ""),
        "timestamp": doc.get("timestamp"),
    }


def _emit_index(doc):
    if _live_page(doc):
        yield doc.get("title", ""), _index_value(doc)


def _emit_child_index(doc):
    if _live_page(doc) and doc.get("lineage"):
        yield doc["lineage"][-1], _index_value(doc)


def _emit_page_by_slug(doc):
    if _live_page(doc):
        yield doc.get("slug", ""), None


def _emit_history(doc):
    if doc.get("type") == "page":
        yield [doc.get("owningPage", ""), doc.get("timestamp") or ""], {
            "title": doc.get("title", ""),
            "editor": doc.get("editor", ""),
            "timestamp": doc.get("timestamp"),
            "contentSize": len((doc.get("content") or {}).get("raw", "")),
        }


def _emit_comments(doc):
    if doc.get("type") == "comment":
        yield [doc.get("owningPage", ""), doc.get("createdTime") or ""], None


def _emit_wiki_by_slug(doc):
    if doc.get("type") == "wiki_record":
        yield doc.get("slug", ""), None


VIEWS = {
    ("wikit", "getIndex"): _emit_index,
    ("wikit", "getChildIndex"): _emit_child_index,
    ("wikit", "getPageBySlug"): _emit_page_by_slug,
    ("wikit", "getHistory"): _emit_history,
    ("wikit_comments", "getCommentsForPage"): _emit_comments,
    ("wiki_query", "getWikiBySlug"): _emit_wiki_by_slug,
}


class FakeDatabase:
    def __init__(self, name, journal):
        self.name = name
        self.docs = {}
        self.journal = journal

    def _log(self, op, target):
        self.journal.append((self.name, op, target))

    @staticmethod
    def _next_rev(rev):
        n = int(rev.split("-")[0]) + 1 if rev else 1
        return f"{n}-{uuid.uuid4().hex[:8]}"

    def read(self, doc_id):
        self._log("read", doc_id)
        if doc_id not in self.docs:
            raise NotFoundError(f"{doc_id} missing")
        doc = copy.deepcopy(self.docs[doc_id])
        return doc, doc["_rev"]

    def write(self, doc, doc_id, rev=""):
        self._log("write", doc_id)
        current = self.docs.get(doc_id)
        current_rev = current["_rev"] if current else ""
        if rev != current_rev:
            raise ConflictError("Document update conflict.")
        new_rev = self._next_rev(current_rev)
        stored = copy.deepcopy(doc)
        stored.update(_id=doc_id, _rev=new_rev)
        self.docs[doc_id] = stored
        return new_rev

    def delete(self, doc_id, rev):
        self._log("delete", doc_id)
        current = self.docs.get(doc_id)
        if current is None:
            raise NotFoundError(f"{doc_id} missing")
        if current["_rev"] != rev:
            raise ConflictError("Document update conflict.")
        del self.docs[doc_id]
        return self._next_rev(rev)

    def multi_read(self, ids):
        self._log("multi_read", tuple(ids))
        rows = []
        for doc_id in ids:
            if doc_id in self.docs:
                rows.append(MultiReadRow(id=doc_id, doc=copy.deepcopy(self.docs[doc_id])))
            else:
                rows.append(MultiReadRow(id=doc_id, error="not_found"))
        return rows

    def query_view(self, design, view, **params):
        self._log("query_view", f"{design}/{view}")
        emit = VIEWS[(design, view)]
        rows = []
        for doc in self.docs.values():
            for key, value in emit(doc):
                rows.append(ViewRow(id=doc["_id"], key=key, value=value))
        total = len(rows)

        descending = params.get("descending", False)
        if "key" in params:
            rows = [r for r in rows if r.key == params["key"]]
        if "startkey" in params or "endkey" in params:
            lo, hi = params.get("startkey"), params.get("endkey")
            if descending:
                lo, hi = hi, lo
            rows = [
                r
                for r in rows
                if (lo is None or _collate(r.key) >= _collate(lo))
                and (hi is None or _collate(r.key) <= _collate(hi))
            ]
        rows.sort(key=lambda r: (_collate(r.key), r.id), reverse=descending)

        skip = params.get("skip", 0)
        limit = params.get("limit")
        rows = rows[skip : skip + limit if limit is not None else None]
        if params.get("include_docs"):
            for r in rows:
                r.doc = copy.deepcopy(self.docs[r.id])
        return ViewResult(total_rows=total, offset=skip, rows=rows)


class FakeStore:
    def __init__(self):
        self.dbs = {}
        self.journal = []
        self.auths = []

    def db(self, name):
        if name not in self.dbs:
            self.dbs[name] = FakeDatabase(name, self.journal)
        return self.dbs[name]

    def select_db(self, name, auth=None):
        self.auths.append((name, auth))
        return self.db(name)

    def ops(self, name=None):
        return [(db, op, target) for db, op, target in self.journal if name is None or db == name]


def make_user(username, *roles):
    return CurrentUser(auth=(username, "secret"), user=User(username=username, roles=list(roles)))


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def renderer():
    r = MarkdownRenderer(workers=2)
    yield r
    r.shutdown()


@pytest.fixture
def wikis(store):
    return WikiRecordManager(store, MAIN_DB)


@pytest.fixture
def pages(store, renderer, wikis):
    return PageManager(store, renderer, wikis)


@pytest.fixture
def gate(store):
    return CommentGate(store, MAIN_DB)


@pytest.fixture
def comments(store, renderer, gate):
    return CommentManager(store, renderer, gate)


@pytest.fixture
def breadcrumbs(pages):
    return BreadcrumbBuilder(pages)


@pytest.fixture
def alice():
    return make_user("alice", "wiki1:write")


@pytest.fixture
def bob():
    return make_user("bob", "wiki1:write")


@pytest.fixture
def wiki(store):
    """A wiki record with id ``wiki1`` and slug ``acme``."""
    record = WikiRecord(name="Acme", slug="acme", description="Acme docs")
    store.db(MAIN_DB).write(record.to_document(), "wiki1")
    return "wiki1"
