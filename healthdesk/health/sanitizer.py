"""Description sanitizer — reduces check descriptions to a small HTML subset.

Only formatting tags survive and every attribute is dropped, so links,
scripts, styles and event handlers never reach the report. Sanitizing never
raises: anything not allowed is stripped silently.
"""

from __future__ import annotations

import html
from html.parser import HTMLParser

ALLOWED_TAGS = frozenset(
    {"br", "p", "strong", "b", "em", "i", "u", "code", "pre", "ul", "ol", "li"}
)
VOID_TAGS = frozenset({"br"})

# Content of these elements is dropped along with the tags.
_DROP_CONTENT_TAGS = frozenset({"script", "style", "iframe", "object", "embed", "template"})


class _AllowListParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._open: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _DROP_CONTENT_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth or tag not in ALLOWED_TAGS:
            return
        if tag in VOID_TAGS:
            self.parts.append(f"<{tag}>")
            return
        self.parts.append(f"<{tag}>")
        self._open.append(tag)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if not self._skip_depth and tag in VOID_TAGS:
            self.parts.append(f"<{tag}>")

    def handle_endtag(self, tag: str) -> None:
        if tag in _DROP_CONTENT_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if self._skip_depth or tag not in ALLOWED_TAGS or tag in VOID_TAGS:
            return
        if tag not in self._open:
            return
        # Close anything left open inside this element first
        while self._open:
            current = self._open.pop()
            self.parts.append(f"</{current}>")
            if current == tag:
                break

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self.parts.append(html.escape(data, quote=False))

    def result(self) -> str:
        while self._open:
            self.parts.append(f"</{self._open.pop()}>")
        return "".join(self.parts)


def sanitize_description(description: str) -> str:
    """Return ``description`` restricted to the allowed tag subset."""
    if not description:
        return ""
    if "<" not in description and "&" not in description:
        return description
    parser = _AllowListParser()
    parser.feed(description)
    parser.close()
    return parser.result()
