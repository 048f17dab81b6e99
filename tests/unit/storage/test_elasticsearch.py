"""
Unit tests for the Elasticsearch adapter, against a mocked HTTP transport.
"""

import json

import httpx
import pytest

from fedsearch.engine.indexer import BulkIndexer
from fedsearch.errors import IndexNotFoundError, SearchBackendError
from fedsearch.platform.config import Settings
from fedsearch.storage.search import ElasticsearchStore


class Recorder:
    """httpx handler returning canned responses and remembering requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
async def store(recorder):
    es = ElasticsearchStore(
        Settings(ELASTICSEARCH_HOST="es.local:9200"),
        transport=httpx.MockTransport(recorder),
    )
    await es.connect()
    yield es
    await es.close()


def test_url_from_host_and_port():
    assert Settings(ELASTICSEARCH_HOST="es.local:9200").elasticsearch_url == "http://es.local:9200"
    assert Settings(ELASTICSEARCH_HOST="es.local", ELASTICSEARCH_PORT=9300).elasticsearch_url == "http://es.local:9300"
    assert Settings(ELASTICSEARCH_URL="https://search:443").elasticsearch_url == "https://search:443"


@pytest.mark.asyncio
async def test_ping_uses_short_timeout(store, recorder):
    recorder.responses.append(httpx.Response(200, json={"tagline": "You Know, for Search"}))
    assert await store.ping(timeout=2.5) is True

    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/"
    assert request.extensions["timeout"]["connect"] == 2.5


@pytest.mark.asyncio
async def test_list_indexes(store, recorder):
    recorder.responses.append(httpx.Response(200, json=[{"index": "fedsearchdocsen"}, {"index": "other"}]))
    assert await store.list_indexes() == ["fedsearchdocsen", "other"]
    assert recorder.requests[0].url.params["format"] == "json"


@pytest.mark.asyncio
async def test_delete_and_refresh_join_names(store, recorder):
    recorder.responses.extend([httpx.Response(200, json={}), httpx.Response(200, json={})])
    await store.delete_indexes(["a", "b"])
    await store.refresh(["a", "b"])

    assert recorder.requests[0].method == "DELETE"
    assert recorder.requests[0].url.path == "/a,b"
    assert recorder.requests[1].url.path == "/a,b/_refresh"


@pytest.mark.asyncio
async def test_empty_name_lists_send_nothing(store, recorder):
    await store.delete_indexes([])
    await store.refresh([])
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_create_index(store, recorder):
    recorder.responses.append(httpx.Response(200, json={"acknowledged": True}))
    body = {"settings": {}, "mappings": {"properties": {"title": {"type": "text"}}}}
    await store.create_index("fedsearchdocsen", body)

    request = recorder.requests[0]
    assert request.method == "PUT"
    assert json.loads(request.content) == body


@pytest.mark.asyncio
async def test_bulk_sends_ndjson(store, recorder):
    recorder.responses.append(httpx.Response(200, json={"took": 3, "errors": False, "items": [{"index": {}}]}))
    commands = [{"index": {"_index": "i", "_id": "1"}}, {"title": "T"}]

    result = await store.bulk(commands, refresh=False)

    request = recorder.requests[0]
    assert request.url.path == "/_bulk"
    assert request.url.params["refresh"] == "false"
    assert request.headers["content-type"] == "application/x-ndjson"
    lines = request.content.decode().split("\n")
    assert [json.loads(line) for line in lines if line] == commands
    assert request.content.endswith(b"\n")
    assert result.took == 3
    assert result.errors is False


@pytest.mark.asyncio
async def test_search_returns_ids_and_total(store, recorder):
    recorder.responses.append(httpx.Response(200, json={
        "hits": {"total": {"value": 2, "relation": "eq"}, "hits": [{"_id": "b"}, {"_id": "a"}]},
    }))

    hits = await store.search("idx", {"query": {"match_all": {}}}, from_=50, size=50)

    assert hits.total == 2
    assert hits.ids == ["b", "a"]
    payload = json.loads(recorder.requests[0].content)
    assert payload["from"] == 50
    assert payload["size"] == 50
    assert payload["_source"] is False
    assert recorder.requests[0].url.path == "/idx/_search"


@pytest.mark.asyncio
async def test_search_accepts_legacy_integer_total(store, recorder):
    recorder.responses.append(httpx.Response(200, json={"hits": {"total": 1, "hits": [{"_id": 7}]}}))
    hits = await store.search("idx", {"query": {}})
    assert hits.total == 1
    assert hits.ids == ["7"]


@pytest.mark.asyncio
async def test_missing_index_raises_index_not_found(store, recorder):
    recorder.responses.append(httpx.Response(404, json={
        "error": {"type": "index_not_found_exception"}, "status": 404,
    }))
    with pytest.raises(IndexNotFoundError) as exc_info:
        await store.search("missing", {"query": {}})
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_payload_too_large_keeps_status(store, recorder):
    recorder.responses.append(httpx.Response(413, text="Request Entity Too Large"))
    with pytest.raises(SearchBackendError) as exc_info:
        await store.bulk([{"index": {"_index": "i", "_id": "1"}}, {}])
    assert exc_info.value.status_code == 413
    assert exc_info.value.body == "Request Entity Too Large"


@pytest.mark.asyncio
async def test_clone_is_a_fresh_unconnected_store(store):
    twin = store.clone()
    assert twin is not store
    assert twin.client is None
    assert twin.config is store.config


@pytest.mark.asyncio
async def test_client_uses_configured_request_timeout(store):
    assert store.client.timeout.read == 10.0


@pytest.mark.asyncio
async def test_bulk_timeout_is_reported_as_408():
    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    store = ElasticsearchStore(Settings(), transport=httpx.MockTransport(slow))

    with pytest.raises(SearchBackendError) as exc_info:
        await store.bulk([{"index": {"_index": "i", "_id": "1"}}, {}])
    await store.close()

    assert exc_info.value.status_code == 408
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_indexer_splits_batches_that_time_out(make_context):
    bulk_sizes = []

    def handler(request):
        lines = [line for line in request.content.decode().split("\n") if line]
        bulk_sizes.append(len(lines) // 2)
        if len(lines) > 2:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json={"took": 1, "errors": False, "items": [{"index": {"status": 201}}]})

    context = make_context()
    context.search_store = ElasticsearchStore(context.settings, transport=httpx.MockTransport(handler))

    result = await BulkIndexer(context).index_documents([{"id": "a"}, {"id": "b"}])

    assert result.splits == 1
    assert bulk_sizes == [2, 1, 1]
    await context.close()
