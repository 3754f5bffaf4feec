"""Unit tests for ElasticsearchListingIndex with a mocked client."""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from elasticsearch import NotFoundError

from marketsearch.domain.exceptions import IndexQueryError, IndexWriteError
from marketsearch.infrastructure.adapters.elasticsearch_index_adapter import (
    ElasticsearchListingIndex,
    parse_search_response,
)

RAW_SEARCH_RESPONSE = {
    "took": 4,
    "hits": {
        "total": {"value": 2, "relation": "eq"},
        "hits": [
            {
                "_id": "l-1",
                "_score": 3.2,
                "_source": {"title": "Road bike", "price": 250},
                "highlight": {"title": ["Road <em>bike</em>"]},
            },
            {"_id": "l-2", "_score": None, "_source": {"title": "Gravel bike"}},
        ],
    },
    "aggregations": {"categories": {"buckets": [{"key": "sports", "doc_count": 2}]}},
}


@pytest.fixture
def es_client():
    client = Mock()
    client.search = AsyncMock(return_value=RAW_SEARCH_RESPONSE)
    client.get = AsyncMock(return_value={"_id": "l-1", "_source": {"title": "Road bike"}})
    client.index = AsyncMock()
    client.update = AsyncMock()
    client.delete = AsyncMock()
    client.info = AsyncMock(return_value={"version": {"number": "8.13.0"}})
    client.close = AsyncMock()
    client.cluster = Mock()
    client.cluster.health = AsyncMock(return_value={"status": "yellow"})
    return client


@pytest.fixture
def index(es_client) -> ElasticsearchListingIndex:
    return ElasticsearchListingIndex(es_client, index_name="listings")


class TestParseSearchResponse:

    def test_hits_total_and_aggregations(self):
        response = parse_search_response(RAW_SEARCH_RESPONSE)

        assert response.total == 2
        assert [hit.id for hit in response.hits] == ["l-1", "l-2"]
        assert response.hits[0].score == 3.2
        assert response.hits[0].source == {"title": "Road bike", "price": 250}
        assert response.hits[0].highlight == {"title": ["Road <em>bike</em>"]}
        assert response.hits[1].highlight is None
        assert response.aggregations["categories"]["buckets"][0]["key"] == "sports"

    def test_integer_total(self):
        assert parse_search_response({"hits": {"total": 7, "hits": []}}).total == 7

    def test_size_zero_response(self):
        response = parse_search_response({"aggregations": {"a": {}}})

        assert response.total == 0
        assert response.hits == []
        assert response.aggregations == {"a": {}}


class TestReads:

    @pytest.mark.asyncio
    async def test_search_passes_body_as_keywords(self, index, es_client):
        body = {"query": {"match_all": {}}, "from": 40, "size": 20, "sort": ["_score"]}

        response = await index.search(body)

        es_client.search.assert_awaited_once_with(
            index="listings",
            query={"match_all": {}},
            from_=40,
            size=20,
            sort=["_score"],
        )
        assert response.total == 2
        assert body["from"] == 40

    @pytest.mark.asyncio
    async def test_search_failure(self, index, es_client):
        es_client.search.side_effect = ConnectionError("cluster down")

        with pytest.raises(IndexQueryError) as exc_info:
            await index.search({"query": {"match_all": {}}})

        assert exc_info.value.operation == "search"

    @pytest.mark.asyncio
    async def test_suggest(self, index, es_client):
        es_client.search.return_value = {
            "suggest": {
                "title_suggest": [{
                    "text": "bik",
                    "options": [{"text": "bike", "_score": 4.0}, {"text": "bike rack", "_score": 2.0}],
                }]
            }
        }

        options = await index.suggest("bik", "title.suggest", 5)

        assert [(o.text, o.score) for o in options] == [("bike", 4.0), ("bike rack", 2.0)]
        suggest = es_client.search.await_args.kwargs["suggest"]
        assert suggest == {
            "title_suggest": {"prefix": "bik", "completion": {"field": "title.suggest", "size": 5}}
        }

    @pytest.mark.asyncio
    async def test_suggest_without_options(self, index, es_client):
        es_client.search.return_value = {"suggest": {"title_suggest": []}}

        assert await index.suggest("zzz", "title.suggest", 5) == []

    @pytest.mark.asyncio
    async def test_more_like_this(self, index, es_client):
        response = await index.more_like_this("l-1", ["title", "tags"], size=3)

        query = es_client.search.await_args.kwargs["query"]["more_like_this"]
        assert query["like"] == [{"_index": "listings", "_id": "l-1"}]
        assert query["fields"] == ["title", "tags"]
        assert query["min_term_freq"] == 1
        assert query["max_query_terms"] == 12
        assert es_client.search.await_args.kwargs["size"] == 3
        assert len(response.hits) == 2

    @pytest.mark.asyncio
    async def test_get(self, index):
        assert await index.get("l-1") == {"title": "Road bike"}

    @pytest.mark.asyncio
    async def test_get_missing_document(self, index, es_client):
        es_client.get.side_effect = NotFoundError("not found", Mock(status=404), {"found": False})

        assert await index.get("missing") is None

    @pytest.mark.asyncio
    async def test_get_failure(self, index, es_client):
        es_client.get.side_effect = ConnectionError("cluster down")

        with pytest.raises(IndexQueryError):
            await index.get("l-1")

    @pytest.mark.asyncio
    async def test_check_health(self, index, es_client):
        assert (await index.check_health())["status"] == "healthy"

        es_client.cluster.health.return_value = {"status": "red"}
        assert (await index.check_health())["status"] == "unhealthy"


class TestWrites:

    @pytest.mark.asyncio
    async def test_index(self, index, es_client):
        await index.index("l-1", {"title": "Sofa"})

        es_client.index.assert_awaited_once_with(index="listings", id="l-1", document={"title": "Sofa"})

    @pytest.mark.asyncio
    async def test_update(self, index, es_client):
        await index.update("l-1", {"price": 90})

        es_client.update.assert_awaited_once_with(index="listings", id="l-1", doc={"price": 90})

    @pytest.mark.asyncio
    async def test_delete(self, index, es_client):
        await index.delete("l-1")

        es_client.delete.assert_awaited_once_with(index="listings", id="l-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation,args", [
        ("index", ("l-1", {"title": "Sofa"})),
        ("update", ("l-1", {"price": 90})),
        ("delete", ("l-1",)),
    ])
    async def test_write_failures(self, index, es_client, operation, args):
        getattr(es_client, operation).side_effect = ConnectionError("cluster down")

        with pytest.raises(IndexWriteError) as exc_info:
            await getattr(index, operation)(*args)

        assert exc_info.value.operation == operation
        assert exc_info.value.listing_id == "l-1"


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_create_checks_cluster(self, es_client):
        with patch(
            "marketsearch.infrastructure.adapters.elasticsearch_index_adapter.AsyncElasticsearch",
            return_value=es_client,
        ) as client_class:
            index = await ElasticsearchListingIndex.create("http://es:9200", index_name="listings_v2")

        client_class.assert_called_once_with("http://es:9200", request_timeout=10.0)
        assert index.index_name == "listings_v2"
        es_client.info.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_closes_client_on_failure(self, es_client):
        es_client.info.side_effect = ConnectionError("cluster down")

        with patch(
            "marketsearch.infrastructure.adapters.elasticsearch_index_adapter.AsyncElasticsearch",
            return_value=es_client,
        ):
            with pytest.raises(ConnectionError):
                await ElasticsearchListingIndex.create("http://es:9200")

        es_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, index, es_client):
        await index.close()
        await index.close()

        es_client.close.assert_awaited_once()
