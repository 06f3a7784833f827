"""Pydantic data models for orchestration operations and responses.

This module defines the data structures returned by the MCP tools:
- Recursive traversal (TraversalResult, CrawledPage)
- Content-type dispatch (DispatchReport, ClassificationLabel)
- Sitemap parsing and single-page crawls (SitemapResult, PageCrawlResult)
- Page renditions and link analysis (MarkdownResult, HtmlResult, LinkReport)
- Batch crawls (BatchCrawlResult, BatchItem)
- Session bookkeeping (SessionRecord, SessionInfo and responses)

All models use Pydantic v2 for validation and serialization.
"""

from crawl4ai_mcp.models.crawl import (
    BatchCrawlResult,
    BatchItem,
    ClassificationLabel,
    CrawledPage,
    DispatchReport,
    HtmlResult,
    LinkReport,
    MarkdownResult,
    PageCrawlResult,
    SitemapResult,
    TraversalResult,
)
from crawl4ai_mcp.models.sessions import (
    SessionClearResponse,
    SessionCreateResponse,
    SessionInfo,
    SessionListResponse,
    SessionRecord,
)

__all__ = [
    # Crawl models
    "ClassificationLabel",
    "CrawledPage",
    "DispatchReport",
    "PageCrawlResult",
    "SitemapResult",
    "TraversalResult",
    "MarkdownResult",
    "HtmlResult",
    "LinkReport",
    "BatchItem",
    "BatchCrawlResult",
    # Session models
    "SessionRecord",
    "SessionInfo",
    "SessionCreateResponse",
    "SessionClearResponse",
    "SessionListResponse",
]
