from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence
from urllib.parse import quote

import httpx

from wikicore.config import DatabaseSettings
from wikicore.core.errors import InternalError, error_for_status
from wikicore.core.store import MultiReadRow, ViewResult, ViewRow
from wikicore.log_utils import get_logger, log_event

logger = get_logger("couchdb")

# view parameters CouchDB expects as JSON values
_JSON_PARAMS = {"key", "keys", "startkey", "endkey", "start_key", "end_key"}


def _encode_params(params: dict[str, Any]) -> dict[str, str]:
    out: dict[str, str] = {}
    for name, value in params.items():
        if value is None:
            continue
        if name in _JSON_PARAMS:
            out[name] = json.dumps(value)
        elif isinstance(value, bool):
            out[name] = "true" if value else "false"
        else:
            out[name] = str(value)
    return out


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"CouchDB returned {resp.status_code}"
    if isinstance(body, dict) and body.get("error"):
        reason = body.get("reason")
        return f"{body['error']}: {reason}" if reason else str(body["error"])
    return f"CouchDB returned {resp.status_code}"


@dataclass
class CouchDocumentStore:
    base_url: str
    timeout_s: int = 10
    retries: int = 3
    backoff_s: float = 0.5
    default_auth: Any = None
    client: httpx.Client | None = None
    _owns_client: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if self.client is None:
            self.client = httpx.Client(timeout=self.timeout_s)
            self._owns_client = True

    @classmethod
    def from_settings(cls, settings: DatabaseSettings, client: httpx.Client | None = None):
        auth = None
        if settings.admin_user:
            auth = (settings.admin_user, settings.admin_password)
        return cls(
            settings.url,
            timeout_s=settings.timeout_s,
            retries=settings.retries,
            default_auth=auth,
            client=client,
        )

    def select_db(self, name: str, auth: Any = None) -> CouchDatabase:
        return CouchDatabase(self, name, auth if auth is not None else self.default_auth)

    def close(self) -> None:
        if self._owns_client and self.client is not None:
            self.client.close()

    def request(self, method: str, path: str, auth: Any = None, retry: bool | None = None, **kwargs) -> Any:
        """Send one request to CouchDB and return the decoded body.

        Network errors are retried only for reads: ``GET`` by default, or
        whatever ``retry`` says. Writes are sent once.
        """
        url = f"{self.base_url}/{path}"
        if auth is not None:
            kwargs["auth"] = auth
        if retry is None:
            retry = method == "GET"
        attempts = self.retries + 1 if retry else 1
        for attempt in range(attempts):
            try:
                resp = self.client.request(method, url, **kwargs)
            except httpx.RequestError as e:
                if attempt == attempts - 1:
                    raise InternalError(f"Network error talking to CouchDB: {e}") from e
                log_event(
                    logger,
                    "store retry",
                    level=logging.WARNING,
                    method=method,
                    path=path,
                    attempt=attempt + 1,
                    error=str(e),
                )
                time.sleep(self.backoff_s * (2 ** attempt))
                continue
            if resp.status_code >= 400:
                raise error_for_status(resp.status_code, _error_message(resp))
            return resp.json()
        raise InternalError("CouchDB unavailable after retries")


@dataclass
class CouchDatabase:
    store: CouchDocumentStore
    name: str
    auth: Any = None

    def _path(self, *parts: str) -> str:
        return "/".join([quote(self.name, safe="")] + list(parts))

    def _doc_path(self, doc_id: str) -> str:
        if not doc_id:
            raise InternalError("document id is required")
        return self._path(quote(doc_id, safe=""))

    def read(self, doc_id: str) -> tuple[dict[str, Any], str]:
        doc = self.store.request("GET", self._doc_path(doc_id), self.auth)
        return doc, doc.get("_rev", "")

    def write(self, doc: dict[str, Any], doc_id: str, rev: str = "") -> str:
        body = {k: v for k, v in doc.items() if k not in ("_id", "_rev")}
        if rev:
            body["_rev"] = rev
        data = self.store.request("PUT", self._doc_path(doc_id), self.auth, json=body)
        return data.get("rev", "")

    def delete(self, doc_id: str, rev: str) -> str:
        data = self.store.request(
            "DELETE", self._doc_path(doc_id), self.auth, params={"rev": rev}
        )
        return data.get("rev", "")

    def multi_read(self, ids: Sequence[str]) -> list[MultiReadRow]:
        data = self.store.request(
            "POST",
            self._path("_all_docs"),
            self.auth,
            retry=True,
            params={"include_docs": "true"},
            json={"keys": list(ids)},
        )
        rows: list[MultiReadRow] = []
        for row in data.get("rows", []):
            doc_id = row.get("id") or row.get("key", "")
            error = row.get("error")
            if not error and (row.get("value") or {}).get("deleted"):
                error = "deleted"
            rows.append(MultiReadRow(id=doc_id, doc=row.get("doc"), error=error))
        return rows

    def query_view(self, design: str, view: str, **params: Any) -> ViewResult:
        data = self.store.request(
            "GET",
            self._path("_design", quote(design, safe=""), "_view", quote(view, safe="")),
            self.auth,
            params=_encode_params(params),
        )
        return ViewResult(
            total_rows=data.get("total_rows", 0),
            offset=data.get("offset", 0),
            rows=[
                ViewRow(
                    id=row.get("id", ""),
                    key=row.get("key"),
                    value=row.get("value"),
                    doc=row.get("doc"),
                )
                for row in data.get("rows", [])
            ],
        )
