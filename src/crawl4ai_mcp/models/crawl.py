"""Pydantic models for traversal, dispatch and sitemap operations."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ClassificationLabel(str, Enum):
    """Inferred content category of a target resource."""

    HTML = "html"
    SITEMAP = "sitemap"
    FEED = "feed"
    JSON = "json"
    TEXT = "text"


class CrawledPage(BaseModel):
    """Outcome of fetching one page during a traversal run."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Normalized URL of the page")
    depth: int = Field(description="Discovery depth (0 = start URL)")
    parent_url: str | None = Field(default=None, description="Page the link was found on")
    success: bool = Field(description="Whether the page was fetched successfully")
    content: str = Field(default="", description="Extracted text content")
    internal_links_found: int = Field(default=0, description="Internal links on the page")
    error: str | None = Field(default=None, description="Error message if failed")


class TraversalResult(BaseModel):
    """Aggregate outcome of one recursive traversal run."""

    model_config = ConfigDict(frozen=True)

    start_url: str = Field(description="URL the traversal started from")
    pages_crawled: int = Field(description="Number of pages fetched successfully")
    max_depth_reached: int = Field(description="Deepest level with a successful page")
    max_depth: int = Field(description="Depth limit of the run")
    max_pages: int = Field(description="Page budget of the run")
    pages: list[CrawledPage] = Field(description="Every fetched page, in visitation order")
    message: str | None = Field(
        default=None, description="Explanation when no pages could be crawled"
    )
    report: str = Field(description="Human-readable report of the run")


class DispatchReport(BaseModel):
    """Outcome of a content-type-aware (smart) crawl."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="The URL that was requested")
    content_type: ClassificationLabel = Field(description="Classification used for dispatch")
    probed_content_type: str | None = Field(
        default=None, description="Content-Type reported by the probe"
    )
    probe_failed: bool = Field(default=False, description="Whether classification degraded")
    urls_found: int | None = Field(default=None, description="URLs discovered in a sitemap")
    links_followed: list[str] = Field(default_factory=list, description="Sitemap URLs fetched")
    links_succeeded: int = Field(default=0, description="Followed links fetched successfully")
    links_failed: int = Field(default=0, description="Followed links that failed")
    error: str | None = Field(default=None, description="Fetch error captured in the report")
    report: str = Field(description="Human-readable report")


class SitemapResult(BaseModel):
    """Outcome of parsing a sitemap."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Sitemap URL")
    total_urls: int = Field(description="Number of URLs found in the sitemap")
    filtered_urls: int = Field(description="Number of URLs matching the filter")
    urls: list[str] = Field(description="URLs matching the filter")
    report: str = Field(description="Human-readable report")


class PageCrawlResult(BaseModel):
    """Outcome of a single-page crawl."""

    url: str = Field(description="The URL that was requested")
    success: bool = Field(description="Whether the fetch was successful")
    session_id: str | None = Field(default=None, description="Session the fetch ran in")
    content: str = Field(description="Extracted content, or 'No content extracted'")
    internal_links: int = Field(default=0, description="Number of internal links")
    external_links: int = Field(default=0, description="Number of external links")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Fetch metadata")
    error: str | None = Field(default=None, description="Error message if failed")


class MarkdownResult(BaseModel):
    """Markdown rendition of a page."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="The URL that was rendered")
    filter: str = Field(description="Content filter applied: raw, fit, bm25 or llm")
    query: str | None = Field(default=None, description="Query used by the bm25/llm filters")
    cache: str = Field(description="Cache revision sent to the remote service")
    markdown: str | None = Field(default=None, description="Rendered markdown, if any")
    report: str = Field(description="Human-readable report")


class HtmlResult(BaseModel):
    """Sanitized HTML of a page."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="The URL that was fetched")
    success: bool = Field(description="Whether the remote service produced HTML")
    html: str = Field(default="", description="Sanitized HTML")


class LinkReport(BaseModel):
    """Links found on a page, optionally grouped by category."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="The URL that was analyzed")
    total: int = Field(description="Number of links found")
    links: list[str] = Field(default_factory=list, description="Internal then external links")
    categories: dict[str, list[str]] | None = Field(
        default=None,
        description="Links per category (internal, external, social, documents, images, scripts)",
    )
    json_content: bool = Field(
        default=False, description="Whether the page looked like JSON rather than HTML"
    )
    report: str = Field(description="Human-readable report")


class BatchItem(BaseModel):
    """Outcome of one URL in a batch crawl."""

    url: str = Field(description="The URL that was requested")
    success: bool = Field(description="Whether the fetch was successful")
    content_length: int = Field(default=0, description="Characters of extracted content")
    error: str | None = Field(default=None, description="Error message if failed")


class BatchCrawlResult(BaseModel):
    """Aggregate outcome of a batch crawl."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(description="Total number of URLs processed")
    successful: int = Field(description="Number of successful fetches")
    failed: int = Field(description="Number of failed fetches")
    results: list[BatchItem] = Field(description="Results for each URL, in request order")
    report: str = Field(description="Human-readable report")
