"""Markdown to sanitized HTML rendering for page and comment bodies.

Every render runs as its own task on an executor. Faults raised while
parsing stay inside that task: they are logged and the task hands back
an empty string, so a hostile document can never fail the save that
triggered it.
"""

from __future__ import annotations

import re
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Iterable

import markdown
import nh3

from wikicore.log_utils import get_logger

logger = get_logger("markdown")

# Attributes plugins hang off rendered elements, allowed on any tag.
DATA_ATTRIBUTES = ("data-plugin", "data-id")
# letters, digits, whitespace and - _ ' , : [ ] ! . / \ ( ) &
DATA_ATTRIBUTE_PATTERN = re.compile(r"[\w\s\-',:\[\]!./\\()&]*")


class HtmlSanitizer:
    """User-content policy: prose, links, images and tables survive;
    script, style and event handler attributes do not."""

    def __init__(
        self,
        extra_attributes: Iterable[str] = DATA_ATTRIBUTES,
        value_pattern: re.Pattern[str] = DATA_ATTRIBUTE_PATTERN,
    ) -> None:
        self._extra = frozenset(extra_attributes)
        self._pattern = value_pattern
        self._tags = set(nh3.ALLOWED_TAGS)
        self._attributes = {tag: set(attrs) for tag, attrs in nh3.ALLOWED_ATTRIBUTES.items()}
        self._attributes.setdefault("*", set()).update(self._extra)

    def _filter(self, element: str, attribute: str, value: str) -> str | None:
        if attribute in self._extra and not self._pattern.fullmatch(value):
            return None
        return value

    def clean(self, html_content: str) -> str:
        if not html_content:
            return ""
        return nh3.clean(
            html_content,
            tags=self._tags,
            attributes=self._attributes,
            attribute_filter=self._filter,
            link_rel="nofollow noopener noreferrer",
        )


class MarkdownRenderer:
    def __init__(
        self,
        *,
        sanitizer: HtmlSanitizer | None = None,
        markdown_factory: Callable[[], markdown.Markdown] | None = None,
        executor: Executor | None = None,
        workers: int = 4,
    ) -> None:
        self.sanitizer = sanitizer or HtmlSanitizer()
        self._markdown_factory = markdown_factory or self._default_markdown_factory
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="markdown-render"
        )

    @staticmethod
    def _default_markdown_factory() -> markdown.Markdown:
        return markdown.Markdown(
            extensions=[
                "markdown.extensions.fenced_code",
                "markdown.extensions.tables",
                "markdown.extensions.sane_lists",
            ]
        )

    def to_html(self, raw: str) -> str:
        """Parse and sanitize in the calling thread. Faults propagate."""
        engine = self._markdown_factory()
        try:
            html_output = engine.convert(raw or "")
        finally:
            engine.reset()
        return self.sanitizer.clean(html_output)

    def _render_task(self, raw: str) -> str:
        try:
            return self.to_html(raw)
        except Exception:
            logger.exception("Parsing Markdown failed")
            return ""

    def render(self, raw: str) -> str:
        # one task, one result; no timeout on the wait
        future = self._executor.submit(self._render_task, raw)
        return future.result()

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
