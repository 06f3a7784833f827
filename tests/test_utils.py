"""Tests for URL and sitemap utility functions."""

from __future__ import annotations

import pytest

from crawl4ai_mcp.errors import InvalidInputError
from crawl4ai_mcp.utils import (
    compile_pattern,
    extract_sitemap_entries,
    format_url_listing,
    is_sitemap_xml,
    is_supported_url,
    normalize_url,
    same_host,
    validate_url,
)


class TestValidateUrl:
    """Tests for is_supported_url and validate_url."""

    def test_supported(self) -> None:
        """Test that http and https URLs are accepted."""
        assert is_supported_url("http://example.com")
        assert is_supported_url("https://example.com/path?query=1")
        assert validate_url("  https://example.com/  ") == "https://example.com/"

    @pytest.mark.parametrize(
        "url",
        ["", "   ", "not a url", "ftp://example.com", "javascript:alert(1)", "https://", None],
    )
    def test_rejected(self, url) -> None:
        """Test that malformed and non-http URLs are rejected."""
        with pytest.raises(InvalidInputError):
            validate_url(url)

    def test_error_is_value_error(self) -> None:
        """Test that InvalidInputError can be caught as ValueError."""
        with pytest.raises(ValueError):
            validate_url("mailto:someone@example.com")


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_relative_resolution(self) -> None:
        """Test resolving relative links against the page URL."""
        assert normalize_url("../b", "https://example.com/docs/a/") == "https://example.com/docs/b"
        assert normalize_url("/c", "https://example.com/docs/a") == "https://example.com/c"
        assert normalize_url("?page=2", "https://example.com/list") == "https://example.com/list?page=2"

    def test_canonical_form(self) -> None:
        """Test fragment removal, lowercasing and default port stripping."""
        assert normalize_url("HTTPS://Example.COM:443/Path#top") == "https://example.com/Path"
        assert normalize_url("http://example.com:80") == "http://example.com/"
        assert normalize_url("http://example.com:8080/x") == "http://example.com:8080/x"

    @pytest.mark.parametrize(
        "href",
        ["javascript:void(0)", "mailto:a@example.com", "tel:+1", "data:text/plain,hi", "", "#top"],
    )
    def test_unsupported_links(self, href) -> None:
        """Test that links without a crawlable target are dropped."""
        # A bare fragment resolves to the page itself only with a base URL
        assert normalize_url(href) is None

    def test_fragment_with_base(self) -> None:
        """Test that a bare fragment resolves to the page URL."""
        assert normalize_url("#top", "https://example.com/a") == "https://example.com/a"

    def test_same_host(self) -> None:
        """Test host comparison."""
        assert same_host("https://Example.com/a", "http://example.com/b")
        assert not same_host("https://example.com", "https://www.example.com")


class TestCompilePattern:
    """Tests for compile_pattern."""

    def test_empty_means_no_filter(self) -> None:
        """Test that None and empty patterns disable filtering."""
        assert compile_pattern(None) is None
        assert compile_pattern("") is None

    def test_valid(self) -> None:
        """Test compiling a valid pattern."""
        assert compile_pattern(r"/docs/\d+").search("https://example.com/docs/12")

    def test_invalid(self) -> None:
        """Test that invalid patterns raise with the parameter name."""
        with pytest.raises(InvalidInputError, match="exclude_pattern"):
            compile_pattern("*.pdf", "exclude_pattern")


class TestSitemapExtraction:
    """Tests for sitemap parsing helpers."""

    def test_urlset(self, sitemap_xml: str) -> None:
        """Test extracting page URLs from a urlset."""
        pages, sitemaps = extract_sitemap_entries(sitemap_xml)

        assert pages == ["https://example.com/page-1", "https://example.com/page-2"]
        assert sitemaps == []

    def test_index(self, sitemap_index_xml: str) -> None:
        """Test that sitemap index entries are classified as nested sitemaps."""
        pages, sitemaps = extract_sitemap_entries(sitemap_index_xml)

        assert pages == []
        assert len(sitemaps) == 2

    def test_duplicates_and_relative_entries_skipped(self) -> None:
        """Test that duplicate and non-absolute entries are dropped."""
        content = (
            "<urlset>"
            "<url><loc> https://example.com/a </loc></url>"
            "<url><loc>https://example.com/a</loc></url>"
            "<url><loc>/relative</loc></url>"
            "</urlset>"
        )

        assert extract_sitemap_entries(content) == (["https://example.com/a"], [])

    def test_empty(self) -> None:
        """Test empty content."""
        assert extract_sitemap_entries("") == ([], [])

    def test_served_xml_detection(self, sitemap_xml: str) -> None:
        """Test telling served sitemap XML from rendered HTML."""
        assert is_sitemap_xml(sitemap_xml)
        assert is_sitemap_xml("<urlset><url><loc>https://example.com/</loc></url></urlset>")
        assert is_sitemap_xml('<sm:sitemapindex xmlns:sm="x"></sm:sitemapindex>')
        assert not is_sitemap_xml("<html><body><loc>https://example.com/</loc></body></html>")

    def test_image_extension_locs_ignored(self) -> None:
        """Test that image:loc entries inside a url are not listed as pages."""
        content = """<?xml version="1.0" encoding="UTF-8"?>
        <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"
                xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">
            <url>
                <loc>https://example.com/gallery</loc>
                <image:image><image:loc>https://example.com/photo.jpg</image:loc></image:image>
            </url>
        </urlset>
        """

        pages, sitemaps = extract_sitemap_entries(content)

        assert pages == ["https://example.com/gallery"]
        assert sitemaps == []

    def test_prefixed_sitemap_namespace(self) -> None:
        """Test a sitemap that binds the protocol namespace to a prefix."""
        content = (
            '<?xml version="1.0"?>'
            '<sm:urlset xmlns:sm="http://www.sitemaps.org/schemas/sitemap/0.9">'
            "<sm:url><sm:loc>https://example.com/a</sm:loc></sm:url>"
            "</sm:urlset>"
        )

        assert extract_sitemap_entries(content) == (["https://example.com/a"], [])

    def test_rendered_html_copy(self) -> None:
        """Test markup rendered by a browser still yields its loc entries."""
        content = (
            "<html><body><div>"
            "<sitemap><loc>https://example.com/sitemap-1.xml</loc></sitemap>"
            "<url><loc>https://example.com/page</loc></url>"
            "</div></body></html>"
        )

        pages, sitemaps = extract_sitemap_entries(content)

        assert pages == ["https://example.com/page"]
        assert sitemaps == ["https://example.com/sitemap-1.xml"]


class TestFormatUrlListing:
    """Tests for format_url_listing."""

    def test_under_limit(self) -> None:
        """Test a listing that fits."""
        assert format_url_listing(["a", "b"], limit=5) == "a\nb"

    def test_truncated(self) -> None:
        """Test the truncation marker."""
        urls = [f"https://example.com/{i}" for i in range(102)]

        listing = format_url_listing(urls)

        assert listing.count("\n") == 100
        assert listing.endswith("\n... and 2 more")
