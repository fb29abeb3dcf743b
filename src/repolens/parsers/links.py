"""Rewrites relative README and release links into absolute GitHub URLs.

Images point at raw content so they render outside github.com; other links
point at the blob view of the repository's default branch. Fragment links
are never touched because heading anchors rely on them.
"""

import re
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repolens.models import Repository


RAW_HOST = "https://raw.githubusercontent.com"
WEB_HOST = "https://github.com"
FALLBACK_BRANCH = "master"

IMAGE_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".bmp", ".ico", ".avif",
}

# scheme per RFC 3986: a letter followed by letters, digits, + - .
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")

# Fenced code blocks are copied through verbatim
_FENCE_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})[^\n]*\n.*?^ {0,3}\2[`~]*[ \t]*$", re.MULTILINE | re.DOTALL)

# `code`, ``code with ` inside``; a span never crosses a blank line
_CODE_SPAN_RE = re.compile(r"(?<!`)(`+)(?!`)(?:(?!\n[ \t]*\n).)+?(?<!`)\1(?!`)", re.DOTALL)
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")

# ](destination "optional title")
_INLINE_DEST_RE = re.compile(
    r"\]\(\s*(?P<dest><[^>\n]*>|[^)\s]+)(?P<rest>(?:\s+(?:\"[^\"]*\"|'[^']*'|\([^)]*\)))?\s*)\)"
)

# [label]: destination
_REFERENCE_RE = re.compile(r"^(?P<lead> {0,3}\[(?!\^)[^\]\n]+\]:[ \t]*)(?P<dest><[^>\n]*>|\S+)", re.MULTILINE)

# <img ... src="..."> and <a ... href="...">
_HTML_ATTR_RE = re.compile(
    r"(?P<lead><(?P<tag>img|a|source)\b[^>]*?\b(?P<attr>src|href|srcset)\s*=\s*)(?P<quote>[\"'])(?P<value>.*?)(?P=quote)",
    re.IGNORECASE | re.DOTALL,
)


def is_absolute(url: str) -> bool:
    """Whether ``url`` already names a full location (or is a fragment)."""
    return (
        not url
        or url.startswith("#")
        or url.startswith("//")
        or bool(_SCHEME_RE.match(url))
    )


def looks_like_image(url: str) -> bool:
    path = url.split("#", 1)[0].split("?", 1)[0]
    return PurePosixPath(path).suffix.lower() in IMAGE_EXTENSIONS


def rewrite_url(url: str, full_name: str, branch: str, image: bool = False) -> str:
    """Make a relative repository link absolute.

    Args:
        url: ``href`` or ``src`` as written in the markdown.
        full_name: Repository in owner/name form.
        branch: Branch the relative path is resolved against.
        image: Whether the link is an image source.

    Returns:
        The absolute URL, or ``url`` unchanged when it already was one.
    """
    if is_absolute(url.strip()):
        return url

    path = url.strip()
    if path.startswith("./"):
        path = path[2:]
    path = path.lstrip("/")
    branch = branch or FALLBACK_BRANCH

    if image:
        return f"{RAW_HOST}/{full_name}/{branch}/{path}"
    return f"{WEB_HOST}/{full_name}/blob/{branch}/{path}"


def _opening_bracket(text: str, close: int) -> int:
    """Index of the ``[`` matching the ``]`` at ``close``, or -1."""
    depth = 0
    for i in range(close, -1, -1):
        char = text[i]
        if char == "]" and (i == 0 or text[i - 1] != "\\"):
            depth += 1
        elif char == "[" and (i == 0 or text[i - 1] != "\\"):
            depth -= 1
            if depth == 0:
                return i
    return -1


class LinkRewriter:
    """Rewrites every relative link of a markdown document.

    Usage:
        rewriter = LinkRewriter("acme/widgets", "main")
        html_ready = rewriter.rewrite_markdown(readme)
    """

    def __init__(self, full_name: str, branch: str) -> None:
        self.full_name = full_name
        self.branch = branch or FALLBACK_BRANCH

    @classmethod
    def for_repository(cls, repository: "Repository") -> "LinkRewriter":
        return cls(repository.full_name, repository.default_branch)

    def rewrite_link(self, href: str) -> str:
        return rewrite_url(href, self.full_name, self.branch, image=False)

    def rewrite_image(self, src: str) -> str:
        return rewrite_url(src, self.full_name, self.branch, image=True)

    def rewrite_markdown(self, content: str) -> str:
        """Rewrite links and images outside code blocks and code spans."""
        parts: list[str] = []
        position = 0
        for fence in _FENCE_RE.finditer(content):
            parts.append(self._rewrite_prose(content[position:fence.start()]))
            parts.append(fence.group(0))
            position = fence.end()
        parts.append(self._rewrite_prose(content[position:]))
        return "".join(parts)

    def _rewrite_prose(self, text: str) -> str:
        if not text:
            return text
        spans: list[str] = []

        def stash(match: re.Match) -> str:
            spans.append(match.group(0))
            return f"\x00{len(spans) - 1}\x00"

        text = _CODE_SPAN_RE.sub(stash, text)
        text = self._rewrite_inline(text)
        text = _REFERENCE_RE.sub(self._replace_reference, text)
        text = _HTML_ATTR_RE.sub(self._replace_html, text)
        return _PLACEHOLDER_RE.sub(lambda m: spans[int(m.group(1))], text)

    def _rewrite_inline(self, text: str) -> str:
        parts: list[str] = []
        position = 0
        for match in _INLINE_DEST_RE.finditer(text):
            opening = _opening_bracket(text, match.start())
            if opening < 0:
                continue
            image = opening > 0 and text[opening - 1] == "!"
            dest = match.group("dest")
            wrapped = dest.startswith("<") and dest.endswith(">")
            target = dest[1:-1] if wrapped else dest
            rewritten = rewrite_url(target, self.full_name, self.branch, image=image)
            if wrapped:
                rewritten = f"<{rewritten}>"
            parts.append(text[position:match.start()])
            parts.append(f"]({rewritten}{match.group('rest')})")
            position = match.end()
        parts.append(text[position:])
        return "".join(parts)

    def _replace_reference(self, match: re.Match) -> str:
        dest = match.group("dest")
        wrapped = dest.startswith("<") and dest.endswith(">")
        target = dest[1:-1] if wrapped else dest
        rewritten = rewrite_url(target, self.full_name, self.branch, image=looks_like_image(target))
        if wrapped:
            rewritten = f"<{rewritten}>"
        return f"{match.group('lead')}{rewritten}"

    def _replace_html(self, match: re.Match) -> str:
        tag = match.group("tag").lower()
        attr = match.group("attr").lower()
        value = match.group("value")
        if attr == "srcset":
            # "a.png 1x, b.png 2x"
            candidates = []
            for candidate in value.split(","):
                pieces = candidate.strip().split(None, 1)
                if not pieces:
                    continue
                pieces[0] = self.rewrite_image(pieces[0])
                candidates.append(" ".join(pieces))
            rewritten = ", ".join(candidates)
        elif tag in ("img", "source"):
            rewritten = self.rewrite_image(value)
        else:
            rewritten = self.rewrite_link(value)
        quote = match.group("quote")
        return f"{match.group('lead')}{quote}{rewritten}{quote}"
