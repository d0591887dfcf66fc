"""Helpers for the limited inline markup that quiz text may carry."""
from __future__ import annotations

import html
import re
from html.parser import HTMLParser

_TAG_RE = re.compile(r"<[^>]*>?")

ALLOWED_TAGS = frozenset({"b", "i", "em", "strong", "u", "br", "code", "sub", "sup", "span"})
_VOID_TAGS = frozenset({"br"})


def strip_markup(text: str) -> str:
    """Remove every tag, leaving the text that would be read aloud."""
    return _TAG_RE.sub("", text)


class _AllowlistCleaner(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._open: list[str] = []

    def handle_starttag(self, tag, attrs):
        # Attributes are always dropped
        if tag not in ALLOWED_TAGS:
            return
        if tag in _VOID_TAGS:
            self.parts.append(f"<{tag}>")
            return
        self.parts.append(f"<{tag}>")
        self._open.append(tag)

    def handle_startendtag(self, tag, attrs):
        if tag in _VOID_TAGS:
            self.parts.append(f"<{tag}>")

    def handle_endtag(self, tag):
        if tag not in self._open:
            return
        # Close anything left open inside this element
        while self._open:
            t = self._open.pop()
            self.parts.append(f"</{t}>")
            if t == tag:
                break

    def handle_data(self, data):
        self.parts.append(html.escape(data, quote=False))

    def result(self) -> str:
        while self._open:
            self.parts.append(f"</{self._open.pop()}>")
        return "".join(self.parts)


def clean_markup(text: str) -> str:
    """Keep only allowlisted inline tags (without attributes); escape the rest."""
    cleaner = _AllowlistCleaner()
    cleaner.feed(text)
    cleaner.close()
    return cleaner.result()
