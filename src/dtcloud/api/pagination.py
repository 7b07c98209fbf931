#!/usr/bin/env python3
"""Token-based pagination for DT Cloud list endpoints.

List endpoints return ``{"<key>": [...], "nextPageToken": "..."}``. An empty
or missing token marks the last page. Pages are always fetched one after
another: the next request needs the previous response's token.

Usage:
    paginator = Paginator(executor)

    # Everything, as one list (all-or-nothing)
    devices = await paginator.collect_all(request, "devices", model=Device)

    # Memory efficient, page by page
    async for page in paginator.paginate(request, "devices"):
        for device in page:
            process(device)

    # A single page for UI-driven paging
    page = await paginator.get_page(request, "devices", page_size=25)
    if page.next_page_token:
        ...

Author: DT Cloud Client Team
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Generic, Optional, TypeVar

from .exceptions import UnknownError

if TYPE_CHECKING:
    from .client import RequestExecutor
    from .request import Request

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================
# Configuration
# ============================================

@dataclass
class PaginationConfig:
    """Configuration for paginated API requests.

    Attributes:
        page_size: Items per request; None lets the server decide
        delay_between_pages: Seconds to wait between requests
        max_pages: Stop after this many pages (None = no limit)
    """
    page_size: Optional[int] = None
    delay_between_pages: float = 0.0
    max_pages: Optional[int] = None


@dataclass
class PagedResult(Generic[T]):
    """One page of a list endpoint.

    Attributes:
        items: Items on this page, in server order
        next_page_token: Token for the next page, None on the last page
    """
    items: list[T] = field(default_factory=list)
    next_page_token: Optional[str] = None

    @property
    def is_last_page(self) -> bool:
        return self.next_page_token is None


# ============================================
# The Paginator
# ============================================

class Paginator:
    """Drives a RequestExecutor through all pages of a list endpoint."""

    def __init__(self, executor: "RequestExecutor"):
        self.executor = executor

    async def get_page(
        self,
        request: "Request",
        paging_key: str,
        model: Any = None,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PagedResult:
        """Fetch exactly one page."""
        return await self.executor.send_page(
            request,
            paging_key,
            model=model,
            page_size=page_size,
            page_token=page_token,
        )

    async def paginate(
        self,
        request: "Request",
        paging_key: str,
        model: Any = None,
        config: Optional[PaginationConfig] = None,
    ) -> AsyncIterator[list]:
        """Iterate through all pages, yielding each page's items.

        Raises:
            UnknownError: If the server hands out a page token twice
            DTError: The first failure ends iteration
        """
        config = config or PaginationConfig()

        token: Optional[str] = None
        seen_tokens: set[str] = set()
        pages_fetched = 0
        fetched_count = 0

        while True:
            page = await self.get_page(
                request,
                paging_key,
                model=model,
                page_size=config.page_size,
                page_token=token,
            )
            pages_fetched += 1
            fetched_count += len(page.items)
            logger.debug(
                f"Fetched page {pages_fetched} of {request.endpoint}: "
                f"{len(page.items)} {paging_key} ({fetched_count:,} total)"
            )

            if page.items:
                yield page.items

            token = page.next_page_token
            if token is None:
                break

            if token in seen_tokens:
                raise UnknownError(
                    "Server returned a page token that was already used",
                    details={"endpoint": request.endpoint, "pages_fetched": pages_fetched},
                )
            seen_tokens.add(token)

            if config.max_pages and pages_fetched >= config.max_pages:
                logger.info(f"Reached max_pages limit ({config.max_pages})")
                break

            if config.delay_between_pages > 0:
                await asyncio.sleep(config.delay_between_pages)

        logger.info(
            f"Pagination of {request.endpoint} complete: "
            f"{fetched_count:,} {paging_key} in {pages_fetched} pages"
        )

    async def collect_all(
        self,
        request: "Request",
        paging_key: str,
        model: Any = None,
        config: Optional[PaginationConfig] = None,
    ) -> list:
        """Fetch every page and return all items in server order.

        All-or-nothing: if any page fails, the error is raised and no
        partial result is returned.
        """
        all_items: list = []
        async for items in self.paginate(request, paging_key, model=model, config=config):
            all_items.extend(items)
        return all_items
