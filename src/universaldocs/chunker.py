"""Heading-based Markdown chunker.

Single-pass algorithm that splits a page into sections at ATX headings
(H1–H6). Each chunk carries the breadcrumb of ancestor heading titles, so an
agent reading a search hit always knows where in the page it sits:

    # Authentication
    Some intro text.
    ## OAuth2 Flow
    Step 1: Get a token...

yields ``(["Authentication"], "Some intro text.")`` and
``(["Authentication", "OAuth2 Flow"], "Step 1: Get a token...")``.

Headings inside fenced code blocks are body text, not section breaks.
"""

from __future__ import annotations

import re

from universaldocs.models.documents import Chunk

MIN_CHUNK_LENGTH = 10

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")

# Inline markup stripped from heading titles, applied in order
_INLINE_MARKUP: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"_(.+?)_"), r"\1"),
    (re.compile(r"`(.+?)`"), r"\1"),
    (re.compile(r"\[(.+?)\]\(.+?\)"), r"\1"),
]


def heading_title(raw: str) -> str:
    """Return a heading's text with emphasis, code and link markup removed."""
    title = raw.strip()
    for pattern, replacement in _INLINE_MARKUP:
        title = pattern.sub(replacement, title)
    return title.strip()


def chunk_markdown(markdown: str) -> list[Chunk]:
    """Split Markdown into heading-addressed chunks.

    Content before the first heading is emitted under an empty heading path.
    Bodies shorter than ``MIN_CHUNK_LENGTH`` characters after trimming are
    dropped. Pure: the same input always yields the same chunks.
    """
    chunks: list[Chunk] = []
    heading_stack: list[str] = []
    body: list[str] = []

    in_code_block = False
    fence: str | None = None

    def flush() -> None:
        text = "\n".join(body).strip()
        if len(text) >= MIN_CHUNK_LENGTH:
            chunks.append(Chunk(heading_path=list(heading_stack), content=text))
        body.clear()

    for line in markdown.splitlines():
        stripped = line.strip()

        # Code block tracking: fence lines stay in the body
        if stripped.startswith("```") or stripped.startswith("~~~"):
            current_fence = stripped[:3]
            if not in_code_block:
                in_code_block = True
                fence = current_fence
            elif current_fence == fence:
                in_code_block = False
                fence = None
            body.append(line)
            continue

        match = None if in_code_block else _HEADING_RE.match(line)
        if match is None:
            body.append(line)
            continue

        flush()
        level = len(match.group(1))
        # A shallower heading discards any deeper history
        del heading_stack[level - 1 :]
        heading_stack.append(heading_title(match.group(2)))

    flush()
    return chunks
