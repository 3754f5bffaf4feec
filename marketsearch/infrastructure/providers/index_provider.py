"""Listing index construction."""

from __future__ import annotations

from typing import Optional

from marketsearch.core.config import Settings, get_settings
from marketsearch.core.interfaces import IListingIndex
from marketsearch.infrastructure.adapters.elasticsearch_index_adapter import ElasticsearchListingIndex


async def create_listing_index(settings: Optional[Settings] = None) -> IListingIndex:
    """Connect to the listing index described by settings."""
    settings = settings or get_settings()

    return await ElasticsearchListingIndex.create(
        settings.ELASTICSEARCH_URL,
        index_name=settings.ELASTICSEARCH_INDEX,
        request_timeout=settings.ELASTICSEARCH_REQUEST_TIMEOUT
    )
