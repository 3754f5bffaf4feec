"""
Elasticsearch Listing Index - listing search and document writes over AsyncElasticsearch

Translates index responses into domain value types and client failures into
IndexQueryError (reads) or IndexWriteError (writes).
"""

from typing import Any, Dict, List, Mapping, Optional

import structlog
from elasticsearch import AsyncElasticsearch, NotFoundError

from marketsearch.core.interfaces import IListingIndex
from marketsearch.domain.entities.listing import CompletionOption, IndexHit, IndexSearchResponse
from marketsearch.domain.exceptions import IndexQueryError, IndexWriteError

logger = structlog.get_logger(__name__)

SUGGESTION_NAME = "title_suggest"


def _body(response: Any) -> Mapping[str, Any]:
    """Plain mapping behind an ObjectApiResponse"""
    return getattr(response, "body", response)


def _search_kwargs(body: Mapping[str, Any]) -> Dict[str, Any]:
    """Request body as keyword arguments ("from" is a Python keyword)"""
    kwargs = dict(body)
    if "from" in kwargs:
        kwargs["from_"] = kwargs.pop("from")
    return kwargs


def parse_search_response(raw: Mapping[str, Any]) -> IndexSearchResponse:
    """Convert a raw search response into an IndexSearchResponse"""
    hits_section = raw.get("hits") or {}
    total = hits_section.get("total", 0)
    if isinstance(total, Mapping):
        total = total.get("value", 0)

    hits = [
        IndexHit(
            id=str(hit.get("_id")),
            score=hit.get("_score"),
            source=dict(hit.get("_source") or {}),
            highlight=hit.get("highlight")
        )
        for hit in hits_section.get("hits", [])
    ]

    return IndexSearchResponse(
        hits=hits,
        total=int(total or 0),
        aggregations=dict(raw.get("aggregations") or {})
    )


class ElasticsearchListingIndex(IListingIndex):
    """Listing index backed by Elasticsearch"""

    def __init__(self, client: AsyncElasticsearch, index_name: str = "listings"):
        self.client = client
        self.index_name = index_name
        self._closed = False

    @classmethod
    async def create(
        cls,
        url: str = "http://localhost:9200",
        index_name: str = "listings",
        request_timeout: float = 10.0
    ) -> "ElasticsearchListingIndex":
        """Create the client and verify the cluster answers"""
        client = AsyncElasticsearch(url, request_timeout=request_timeout)

        try:
            info = await client.info()
            logger.info(
                "Elasticsearch index initialized",
                url=url,
                index=index_name,
                version=_body(info).get("version", {}).get("number")
            )
            return cls(client, index_name=index_name)

        except Exception as e:
            logger.error("Failed to initialize Elasticsearch", url=url, error=str(e))
            await client.close()
            raise

    async def check_health(self) -> Dict[str, Any]:
        """Cluster health as seen by this client"""
        try:
            health = _body(await self.client.cluster.health())
            status = health.get("status")
            return {
                "status": "healthy" if status in ("green", "yellow") else "unhealthy",
                "service": "ElasticsearchListingIndex",
                "cluster_status": status,
                "index": self.index_name
            }
        except Exception as e:
            logger.error("Elasticsearch health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "service": "ElasticsearchListingIndex",
                "error": str(e),
                "index": self.index_name
            }

    async def search(self, body: Dict[str, Any]) -> IndexSearchResponse:
        try:
            response = await self.client.search(index=self.index_name, **_search_kwargs(body))
            return parse_search_response(_body(response))
        except Exception as e:
            logger.error("Elasticsearch search error", error=str(e))
            raise IndexQueryError("search", str(e)) from e

    async def suggest(self, prefix: str, field: str, size: int) -> List[CompletionOption]:
        try:
            response = _body(await self.client.search(
                index=self.index_name,
                suggest={
                    SUGGESTION_NAME: {
                        "prefix": prefix,
                        "completion": {
                            "field": field,
                            "size": size
                        }
                    }
                }
            ))
            entries = (response.get("suggest") or {}).get(SUGGESTION_NAME) or []
            options = entries[0].get("options", []) if entries else []
            return [
                CompletionOption(text=option["text"], score=float(option.get("_score") or 0.0))
                for option in options
            ]
        except Exception as e:
            logger.error("Elasticsearch suggest error", prefix=prefix, error=str(e))
            raise IndexQueryError("suggest", str(e)) from e

    async def more_like_this(
        self,
        listing_id: str,
        fields: List[str],
        size: int,
        min_term_freq: int = 1,
        max_query_terms: int = 12
    ) -> IndexSearchResponse:
        try:
            response = await self.client.search(
                index=self.index_name,
                query={
                    "more_like_this": {
                        "fields": fields,
                        "like": [
                            {
                                "_index": self.index_name,
                                "_id": listing_id
                            }
                        ],
                        "min_term_freq": min_term_freq,
                        "max_query_terms": max_query_terms
                    }
                },
                size=size
            )
            return parse_search_response(_body(response))
        except Exception as e:
            logger.error("Elasticsearch more_like_this error", listing_id=listing_id, error=str(e))
            raise IndexQueryError("more_like_this", str(e)) from e

    async def get(self, listing_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = _body(await self.client.get(index=self.index_name, id=listing_id))
            return dict(response.get("_source") or {})
        except NotFoundError:
            return None
        except Exception as e:
            logger.error("Elasticsearch get error", listing_id=listing_id, error=str(e))
            raise IndexQueryError("get", str(e)) from e

    async def index(self, listing_id: str, document: Dict[str, Any]) -> None:
        try:
            await self.client.index(index=self.index_name, id=listing_id, document=document)
        except Exception as e:
            raise IndexWriteError("index", listing_id, str(e)) from e

    async def update(self, listing_id: str, partial: Dict[str, Any]) -> None:
        try:
            await self.client.update(index=self.index_name, id=listing_id, doc=partial)
        except Exception as e:
            raise IndexWriteError("update", listing_id, str(e)) from e

    async def delete(self, listing_id: str) -> None:
        try:
            await self.client.delete(index=self.index_name, id=listing_id)
        except Exception as e:
            raise IndexWriteError("delete", listing_id, str(e)) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.client.close()
        logger.info("Elasticsearch client closed")
