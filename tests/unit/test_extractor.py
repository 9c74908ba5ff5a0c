"""Unit tests for the BeautifulSoup + markdownify extractor."""

from __future__ import annotations

from universaldocs.extractor import MarkdownExtractor
from universaldocs.profiles import get_profile

BODY = "This paragraph is long enough that the main container clears the minimum text threshold for selection, with a second clause for good measure."


def _page(main: str, extra: str = "") -> str:
    return (
        "<html><head><title>T</title><script>var x = 1;</script></head><body>"
        '<nav class="navbar"><a href="/a">Navigation link</a></nav>'
        f"{extra}<main>{main}</main>"
        "<footer>Footer text that should disappear</footer>"
        "</body></html>"
    )


class TestMarkdownExtractor:
    def test_headings_are_atx(self) -> None:
        md = MarkdownExtractor().extract(_page(f"<h1>Button</h1><h2>Props</h2><p>{BODY}</p>"), "https://x.dev/b")
        assert "# Button" in md
        assert "## Props" in md

    def test_noise_removed(self) -> None:
        md = MarkdownExtractor().extract(_page(f"<p>{BODY}</p>"), "https://x.dev/b")
        assert "Navigation link" not in md
        assert "Footer text" not in md
        assert "var x" not in md

    def test_code_language_tagged(self) -> None:
        html = _page(f'<p>{BODY}</p><pre><code class="language-tsx">&lt;Button /&gt;</code></pre>')
        md = MarkdownExtractor().extract(html, "https://x.dev/b")
        assert "```tsx" in md
        assert "<Button />" in md

    def test_bullets_use_dash(self) -> None:
        md = MarkdownExtractor().extract(_page(f"<p>{BODY}</p><ul><li>one</li><li>two</li></ul>"), "https://x.dev/b")
        assert "- one" in md

    def test_small_container_falls_back_to_body(self) -> None:
        html = f"<html><body><main>tiny</main><div><p>{BODY}</p></div></body></html>"
        md = MarkdownExtractor().extract(html, "https://x.dev/b")
        assert BODY in md

    def test_profile_selectors_take_priority(self) -> None:
        html = (
            "<html><body>"
            f'<main><div class="VPSidebar">Sidebar noise</div><div class="vp-doc"><p>{BODY}</p></div>'
            f"<p>{BODY} outside</p></main>"
            "</body></html>"
        )
        md = MarkdownExtractor().extract(html, "https://vitejs.dev/guide/")
        assert "Sidebar noise" not in md
        assert "outside" not in md


class TestProfiles:
    def test_known_framework(self) -> None:
        assert get_profile("https://project.readthedocs.io/en/latest/").name == "ReadTheDocs / Sphinx"

    def test_generic_fallback(self) -> None:
        profile = get_profile("https://docs.unknown-site.example/intro")
        assert profile.name == "Generic"
        assert profile.content_selectors == []
        assert profile.sub_tab_suffixes is None
