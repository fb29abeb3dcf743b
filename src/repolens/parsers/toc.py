"""README outline extraction.

Headings are taken from the rendered token stream (markdown-it-py), so
headings inside code blocks or HTML comments never show up. Anchors follow
GitHub's slug rules so they match what the rendered README links to.
"""

import re
from dataclasses import dataclass
from typing import Optional

from markdown_it import MarkdownIt

from repolens.models import ContentTab, TabContentState, TocEntry


_SLUG_STRIP_RE = re.compile(r"[^\w\- ]", re.UNICODE)


def slugify(text: str) -> str:
    """GitHub-style heading slug ("Getting Started!" -> "getting-started")."""
    return _SLUG_STRIP_RE.sub("", text.strip().lower()).replace(" ", "-")


@dataclass(frozen=True)
class RenderedHeading:
    """A heading element as it appears in the rendered document."""

    level: int
    text: str
    anchor: Optional[str] = None


class TableOfContentsExtractor:
    """Derives a heading outline from README content.

    Usage:
        extractor = TableOfContentsExtractor()
        entries = extractor.for_markdown(readme)
    """

    def __init__(self, max_level: int = 3) -> None:
        self.max_level = max_level
        self._md = MarkdownIt("commonmark")

    def scan(self, content: str) -> list[RenderedHeading]:
        """Render ``content`` and return every heading in document order."""
        headings: list[RenderedHeading] = []
        seen: dict[str, int] = {}
        tokens = self._md.parse(content)

        for i, token in enumerate(tokens):
            if token.type != "heading_open":
                continue
            level = int(token.tag[1:])
            inline = tokens[i + 1] if i + 1 < len(tokens) else None
            text = _inline_text(inline) if inline is not None else ""
            headings.append(RenderedHeading(level=level, text=text, anchor=_unique(slugify(text), seen)))

        return headings

    def extract(self, headings: list[RenderedHeading]) -> list[TocEntry]:
        """Turn rendered headings into outline entries.

        Only levels up to ``max_level`` are kept; a heading without an
        anchor gets ``heading-{index}`` where index counts kept headings,
        suffixed like any other slug if a real anchor already took it.
        """
        kept = [h for h in headings if 1 <= h.level <= self.max_level]
        seen: dict[str, int] = {h.anchor: 0 for h in kept if h.anchor}
        entries = []
        for index, heading in enumerate(kept):
            entry_id = heading.anchor or _unique(f"heading-{index}", seen)
            entries.append(TocEntry(id=entry_id, text=heading.text, level=heading.level))
        return entries

    def for_markdown(self, content: str) -> list[TocEntry]:
        if not content.strip():
            return []
        return self.extract(self.scan(content))

    def for_state(self, state: TabContentState) -> list[TocEntry]:
        """Outline for the visible content; empty unless a README is shown."""
        if state.tab is not ContentTab.README or not state.is_ready:
            return []
        return self.for_markdown(state.readme)


def _inline_text(token) -> str:
    parts: list[str] = []
    for child in token.children or []:
        if child.type in ("text", "code_inline"):
            parts.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            parts.append(" ")
        elif child.type == "image":
            parts.append(child.content)
    return "".join(parts).strip()


def _unique(slug: str, seen: dict[str, int]) -> str:
    """Suffix repeated slugs with -1, -2, ... like GitHub does."""
    if not slug:
        return slug
    candidate = slug
    while candidate in seen:
        seen[slug] += 1
        candidate = f"{slug}-{seen[slug]}"
    seen[candidate] = 0
    return candidate
