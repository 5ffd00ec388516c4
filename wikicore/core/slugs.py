from __future__ import annotations

import re
import unicodedata
from typing import Callable

_SEGMENT_SEP_RE = re.compile(r"[ _]+")
_SEGMENT_BAD_RE = re.compile(r"[^a-z0-9-]+")
_MULTI_HYPHEN_RE = re.compile(r"-{2,}")
_VALID_SLUG_RE = re.compile(r"^[A-Za-z0-9_-]+$")

FALLBACK_SLUG = "page"


def slugify(raw: str) -> str:
    text = unicodedata.normalize("NFKD", raw or "")
    text = text.encode("ascii", "ignore").decode("ascii")
    slug = text.strip().lower()
    slug = _SEGMENT_SEP_RE.sub("-", slug)
    slug = _SEGMENT_BAD_RE.sub("-", slug)
    slug = _MULTI_HYPHEN_RE.sub("-", slug)
    return slug.strip("-")


def is_valid_slug(slug: str) -> bool:
    return bool(slug) and bool(_VALID_SLUG_RE.match(slug))


def ensure_unique(slug: str, taken: Callable[[str], bool]) -> str:
    if not taken(slug):
        return slug
    counter = 1
    while taken(f"{slug}-{counter}"):
        counter += 1
    return f"{slug}-{counter}"


def slug_from_title(title: str, taken: Callable[[str], bool]) -> str:
    return ensure_unique(slugify(title) or FALLBACK_SLUG, taken)
