"""HTML → Markdown extraction for rendered documentation pages.

Strategy, in order:
  1. Remove noise elements (profile-specific, then generic: nav, footers,
     sidebars, cookie banners, scripts).
  2. Pick the first content container (profile selectors, then the generic
     list) holding more than 100 characters of text.
  3. Fall back to ``<body>``.
  4. Convert with markdownify: ATX headings, ``-`` bullets, fenced code
     blocks tagged with the language found on ``language-*``/``lang-*``
     classes.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag
from markdownify import ATX, markdownify

from universaldocs.profiles import SiteProfile, get_profile

MIN_CONTAINER_TEXT = 100

CONTENT_SELECTORS = [
    "main",
    '[role="main"]',
    "article",
    ".article",
    ".content",
    ".main-content",
    ".doc-content",
    ".docs-content",
    ".page-content",
    ".markdown-body",
    ".prose",
    "#content",
    "#main-content",
    "#main",
    ".docMainContainer",
    ".docPage",
    ".rst-content",
    ".document",
    ".md-content",
    ".md-content__inner",
    '[class*="content"]',
    '[class*="Content"]',
    '[class*="article"]',
    '[class*="Article"]',
]

NOISE_SELECTORS = [
    "header",
    "nav",
    "footer",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="contentinfo"]',
    ".sidebar",
    ".side-nav",
    ".side-bar",
    ".toc",
    ".table-of-contents",
    "#sidebar",
    "#side-nav",
    "#toc",
    ".nav",
    ".navigation",
    ".navbar",
    ".breadcrumb",
    ".breadcrumbs",
    ".cookie-banner",
    ".cookie-consent",
    "#onetrust-consent-sdk",
    '[class*="cookie"]',
    '[id*="cookie"]',
    ".overlay",
    ".modal",
    ".dialog",
    ".ads",
    ".advertisement",
    ".ad-banner",
    "script",
    "style",
    "noscript",
    '[aria-hidden="true"]',
    ".skip-nav",
    ".skip-link",
]

_LANGUAGE_CLASS_RE = re.compile(r"^(?:language|lang)-([\w+#-]+)$")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def _code_language(pre: Tag) -> str | None:
    """Language of a ``<pre>`` block from its own or its ``<code>`` child's classes."""
    candidates = [pre]
    code = pre.find("code")
    if isinstance(code, Tag):
        candidates.append(code)
    for el in candidates:
        for cls in el.get("class") or []:
            match = _LANGUAGE_CLASS_RE.match(cls)
            if match:
                return match.group(1)
    return None


class MarkdownExtractor:
    """Default ExtractorProtocol implementation (BeautifulSoup + markdownify)."""

    def extract(self, html: str, url: str, profile: SiteProfile | None = None) -> str:
        profile = profile or get_profile(url)
        soup = BeautifulSoup(html, "html.parser")

        for selector in [*profile.noise_selectors, *NOISE_SELECTORS]:
            for el in soup.select(selector):
                if not el.decomposed:
                    el.decompose()

        container = self._find_container(soup, [*profile.content_selectors, *CONTENT_SELECTORS])
        if container is None:
            container = soup.body or soup

        markdown = markdownify(
            str(container),
            heading_style=ATX,
            bullets="-",
            code_language_callback=_code_language,
        )
        return _BLANK_RUN_RE.sub("\n\n", markdown).strip()

    @staticmethod
    def _find_container(soup: BeautifulSoup, selectors: list[str]) -> Tag | None:
        for selector in selectors:
            el = soup.select_one(selector)
            if el is not None and len(el.get_text(strip=True)) > MIN_CONTAINER_TEXT:
                return el
        return None
