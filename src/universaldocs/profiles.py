"""Per-framework extraction profiles.

When a URL matches a profile's pattern, its selectors are tried before the
generic lists in extractor.py, and its sub-tab suffixes (if any) replace the
configured list for that site.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SiteProfile:
    name: str
    url_pattern: re.Pattern[str]  # Matched against the full URL
    content_selectors: list[str] = field(default_factory=list)
    noise_selectors: list[str] = field(default_factory=list)
    sub_tab_suffixes: list[str] | None = None


SITE_PROFILES: list[SiteProfile] = [
    SiteProfile(
        name="Docusaurus",
        url_pattern=re.compile(r"docusaurus|facebook\.github\.io", re.IGNORECASE),
        content_selectors=[
            "article.markdown",
            ".theme-doc-markdown",
            "article",
            ".docMainContainer",
            ".docPage",
        ],
        noise_selectors=[
            "nav.navbar",
            "nav.theme-doc-sidebar-container",
            ".tableOfContents",
            ".theme-doc-toc-desktop",
            "footer",
            ".pagination-nav",
            ".docusaurus-mt-lg",
        ],
    ),
    SiteProfile(
        name="VitePress",
        url_pattern=re.compile(r"vitepress|vitejs\.dev|vuejs\.org", re.IGNORECASE),
        content_selectors=[".vp-doc", ".content-container .content", "main"],
        noise_selectors=[
            ".VPNav",
            ".VPSidebar",
            ".VPLocalNav",
            ".VPDocOutlineItem",
            ".VPFooter",
            "footer",
            "aside",
        ],
    ),
    SiteProfile(
        name="MkDocs Material",
        url_pattern=re.compile(r"mkdocs|squidfunk\.github\.io", re.IGNORECASE),
        content_selectors=[".md-content__inner", ".md-content", "article"],
        noise_selectors=[".md-header", ".md-sidebar", ".md-footer", ".md-nav", ".md-search", "nav", "footer"],
    ),
    SiteProfile(
        name="Nextra",
        url_pattern=re.compile(r"nextra|vercel\.com/docs|swr\.vercel\.app", re.IGNORECASE),
        content_selectors=["article", ".nextra-content", "main article"],
        noise_selectors=["nav", "aside", "footer", ".nextra-sidebar-container", ".nextra-toc"],
    ),
    SiteProfile(
        name="ReadTheDocs / Sphinx",
        url_pattern=re.compile(r"readthedocs\.io|readthedocs\.org|\.readthedocs\.", re.IGNORECASE),
        content_selectors=[".rst-content", 'div[role="main"]', ".document"],
        noise_selectors=[
            ".wy-side-nav-search",
            ".wy-nav-side",
            ".wy-nav-top",
            ".wy-breadcrumbs",
            ".rst-footer-buttons",
            "footer",
            "nav",
        ],
    ),
    SiteProfile(
        name="Cube.dev",
        url_pattern=re.compile(r"cube\.dev", re.IGNORECASE),
        content_selectors=["main", "article", '[class*="content"]'],
        noise_selectors=["nav", "header", "footer", "aside", '[class*="sidebar"]'],
    ),
    SiteProfile(
        name="Stripe",
        url_pattern=re.compile(r"stripe\.com/docs", re.IGNORECASE),
        content_selectors=[".article-body", "article", "main"],
        noise_selectors=["nav", "header", "footer", "aside", ".toc-container"],
    ),
]

# Matches everything; the extractor falls back to its generic selector lists
GENERIC_PROFILE = SiteProfile(name="Generic", url_pattern=re.compile(r".*"))


def get_profile(url: str) -> SiteProfile:
    """Return the first profile whose pattern matches ``url``, else the generic one."""
    for profile in SITE_PROFILES:
        if profile.url_pattern.search(url):
            return profile
    return GENERIC_PROFILE
