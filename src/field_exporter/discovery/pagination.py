"""Cursor-paginated collection fetching."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger()

PageFetcher = Callable[[str | None], Awaitable[dict[str, Any]]]


class ErrorPolicy(str, Enum):
    """What to do when a page request fails."""

    RAISE = "raise"
    DEGRADE = "degrade"


class CollectionFetchError(Exception):
    """Raised when an authoritative collection cannot be fetched."""

    def __init__(self, label: str, cause: Exception):
        super().__init__(f"Failed to fetch {label}: {cause}")
        self.label = label
        self.cause = cause


@dataclass
class CollectionResult:
    """Items gathered from every page of a collection.

    ``failed`` distinguishes a collection that could not be fetched from one
    that is genuinely empty.
    """

    items: list[dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    failed: bool = False
    error: str | None = None


async def collect_pages(
    fetch_page: PageFetcher,
    label: str,
    on_error: ErrorPolicy = ErrorPolicy.RAISE,
    on_page: Callable[[int, int], None] | None = None,
) -> CollectionResult:
    """Fetch every page of a collection by following ``next_page.offset``.

    Args:
        fetch_page: Coroutine function taking the offset (None for the first page)
        label: Collection name used in logs and errors
        on_error: RAISE to propagate failures, DEGRADE to return an empty failed result
        on_page: Optional callback receiving (pages fetched, items so far)

    Returns:
        CollectionResult with all items in upstream order

    Raises:
        CollectionFetchError: If a page fails and ``on_error`` is RAISE
    """
    result = CollectionResult()
    offset: str | None = None

    while True:
        try:
            page = await fetch_page(offset)
        except Exception as e:
            if on_error == ErrorPolicy.RAISE:
                raise CollectionFetchError(label, e) from e
            logger.warning(
                "collection_fetch_failed",
                collection=label,
                pages_fetched=result.pages,
                error=str(e),
            )
            return CollectionResult(pages=result.pages, failed=True, error=str(e))

        result.items.extend(page.get("data") or [])
        result.pages += 1
        if on_page:
            on_page(result.pages, len(result.items))

        next_page = page.get("next_page") or {}
        offset = next_page.get("offset")
        if not offset:
            break

    logger.debug("collection_fetched", collection=label, pages=result.pages, items=len(result.items))
    return result
