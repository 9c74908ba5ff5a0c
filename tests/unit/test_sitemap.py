"""Unit tests for universaldocs.sitemap."""

from __future__ import annotations

import httpx
import respx

from universaldocs.sitemap import SitemapResolver, extract_locs

ORIGIN = "https://docs.example.com"


def _urlset(*urls: str) -> str:
    locs = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<?xml version="1.0"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{locs}</urlset>'


def _index(*urls: str) -> str:
    locs = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
    return f'<?xml version="1.0"?><sitemapindex>{locs}</sitemapindex>'


class TestExtractLocs:
    def test_plain_and_cdata(self) -> None:
        xml = "<urlset><loc> https://a.dev/x </loc><loc><![CDATA[https://a.dev/y]]></loc></urlset>"
        assert extract_locs(xml) == ["https://a.dev/x", "https://a.dev/y"]

    def test_truncated_markup_keeps_complete_entries(self) -> None:
        xml = "<urlset><url><loc>https://a.dev/ok</loc></url><url><loc>https://a.dev/cut"
        assert extract_locs(xml) == ["https://a.dev/ok"]


class TestDiscoverUrls:
    async def test_no_sitemap_anywhere(self) -> None:
        with respx.mock:
            respx.get(url__startswith=ORIGIN).mock(return_value=httpx.Response(404))
            async with httpx.AsyncClient() as client:
                assert await SitemapResolver(client).discover_urls(f"{ORIGIN}/docs/intro") == []

    async def test_unreachable_host(self) -> None:
        with respx.mock:
            respx.get(url__startswith=ORIGIN).mock(side_effect=httpx.ConnectError("refused"))
            async with httpx.AsyncClient() as client:
                assert await SitemapResolver(client).discover_urls(ORIGIN) == []

    async def test_leaf_sitemap(self) -> None:
        with respx.mock:
            respx.get(f"{ORIGIN}/sitemap.xml").mock(
                return_value=httpx.Response(200, text=_urlset(f"{ORIGIN}/a", f"{ORIGIN}/b", f"{ORIGIN}/a"))
            )
            async with httpx.AsyncClient() as client:
                urls = await SitemapResolver(client).discover_urls(f"{ORIGIN}/docs")
        assert urls == [f"{ORIGIN}/a", f"{ORIGIN}/b"]

    async def test_falls_through_to_next_location(self) -> None:
        with respx.mock:
            respx.get(f"{ORIGIN}/sitemap.xml").mock(return_value=httpx.Response(404))
            respx.get(f"{ORIGIN}/sitemap_index.xml").mock(
                return_value=httpx.Response(200, text=_urlset(f"{ORIGIN}/from-index"))
            )
            third = respx.get(f"{ORIGIN}/sitemap/sitemap.xml").mock(
                return_value=httpx.Response(200, text=_urlset(f"{ORIGIN}/never"))
            )
            async with httpx.AsyncClient() as client:
                urls = await SitemapResolver(client).discover_urls(ORIGIN)
        assert urls == [f"{ORIGIN}/from-index"]
        assert third.call_count == 0

    async def test_index_recursion(self) -> None:
        with respx.mock:
            respx.get(f"{ORIGIN}/sitemap.xml").mock(
                return_value=httpx.Response(
                    200, text=_index(f"{ORIGIN}/sitemap-docs.xml", f"{ORIGIN}/sitemap-blog.xml")
                )
            )
            respx.get(f"{ORIGIN}/sitemap-docs.xml").mock(
                return_value=httpx.Response(200, text=_urlset(f"{ORIGIN}/docs/a"))
            )
            respx.get(f"{ORIGIN}/sitemap-blog.xml").mock(
                return_value=httpx.Response(200, text=_urlset(f"{ORIGIN}/blog/b"))
            )
            async with httpx.AsyncClient() as client:
                urls = await SitemapResolver(client).discover_urls(ORIGIN)
        assert urls == [f"{ORIGIN}/docs/a", f"{ORIGIN}/blog/b"]

    async def test_depth_bound(self) -> None:
        with respx.mock:
            respx.get(f"{ORIGIN}/sitemap.xml").mock(
                return_value=httpx.Response(200, text=_index(f"{ORIGIN}/level1.xml"))
            )
            respx.get(f"{ORIGIN}/level1.xml").mock(
                return_value=httpx.Response(200, text=_index(f"{ORIGIN}/level2.xml"))
            )
            respx.get(f"{ORIGIN}/level2.xml").mock(
                return_value=httpx.Response(200, text=_urlset(f"{ORIGIN}/deep"))
            )
            respx.get(url__startswith=ORIGIN).mock(return_value=httpx.Response(404))
            async with httpx.AsyncClient() as client:
                shallow = await SitemapResolver(client, max_depth=1).discover_urls(ORIGIN)
                deep = await SitemapResolver(client, max_depth=3).discover_urls(ORIGIN)
        assert shallow == []
        assert deep == [f"{ORIGIN}/deep"]

    async def test_path_filter(self) -> None:
        with respx.mock:
            respx.get(f"{ORIGIN}/sitemap.xml").mock(
                return_value=httpx.Response(200, text=_urlset(f"{ORIGIN}/docs/a", f"{ORIGIN}/blog/b"))
            )
            async with httpx.AsyncClient() as client:
                urls = await SitemapResolver(client).discover_urls(ORIGIN, path_filter="/docs")
        assert urls == [f"{ORIGIN}/docs/a"]

    async def test_cap(self) -> None:
        many = [f"{ORIGIN}/p{i}" for i in range(10)]
        with respx.mock:
            respx.get(f"{ORIGIN}/sitemap.xml").mock(return_value=httpx.Response(200, text=_urlset(*many)))
            async with httpx.AsyncClient() as client:
                urls = await SitemapResolver(client, max_urls=3).discover_urls(ORIGIN)
        assert urls == many[:3]

    async def test_malformed_sitemap_is_empty(self) -> None:
        with respx.mock:
            respx.get(url__startswith=ORIGIN).mock(
                return_value=httpx.Response(200, text="<html>Not a sitemap</html>")
            )
            async with httpx.AsyncClient() as client:
                assert await SitemapResolver(client).discover_urls(ORIGIN) == []
