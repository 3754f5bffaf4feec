"""Provider for the shared listing search engine."""

from __future__ import annotations

import asyncio
from typing import Optional

from marketsearch.application.search.search_engine import ListingSearchEngine
from marketsearch.core.logging_config import configure_logging

_search_engine: Optional[ListingSearchEngine] = None
_lock = asyncio.Lock()


async def get_search_engine() -> ListingSearchEngine:
    """Return the singleton search engine, connecting on first use."""
    global _search_engine

    if _search_engine is not None:
        return _search_engine

    async with _lock:
        if _search_engine is not None:
            return _search_engine

        configure_logging()
        _search_engine = await ListingSearchEngine.connect()
        return _search_engine


async def shutdown_search_engine() -> None:
    """Close the singleton's connections and forget it."""
    global _search_engine

    async with _lock:
        if _search_engine is not None:
            await _search_engine.close()
        _search_engine = None
