import json
from typing import List, Dict, Any, Optional

import httpx
import structlog

from fedsearch.errors import IndexNotFoundError, SearchBackendError
from fedsearch.platform.config import Settings, settings as default_settings
from fedsearch.storage.search.base import SearchStore, SearchHits, BulkResponse

logger = structlog.get_logger()


class ElasticsearchStore(SearchStore):
    """Elasticsearch implementation of SearchStore using httpx for async."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or default_settings
        self._url = self.config.elasticsearch_url
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    def clone(self) -> "ElasticsearchStore":
        """A fresh, unconnected store with the same configuration."""
        return ElasticsearchStore(self.config, transport=self._transport)

    async def connect(self) -> None:
        if not self.client:
            self.client = httpx.AsyncClient(
                base_url=self._url,
                transport=self._transport,
                timeout=self.config.ELASTICSEARCH_TIMEOUT,
            )

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _ensure_connected(self):
        if not self.client:
            await self.connect()

    def _raise_for_status(self, resp: httpx.Response, operation: str) -> None:
        if resp.is_success:
            return
        try:
            body = resp.json()
        except ValueError:
            body = resp.text
        error_type = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error_type = body["error"].get("type")
        logger.debug(f"{operation}_failed", status=resp.status_code, error_type=error_type)
        message = f"elasticsearch {operation} failed with status {resp.status_code}"
        if resp.status_code == 404 or error_type == "index_not_found_exception":
            raise IndexNotFoundError(message, status_code=resp.status_code, body=body)
        raise SearchBackendError(message, status_code=resp.status_code, body=body)

    async def ping(self, timeout: Optional[float] = None) -> bool:
        await self._ensure_connected()
        timeout = timeout if timeout is not None else self.config.ELASTICSEARCH_PING_TIMEOUT
        resp = await self.client.get("/", timeout=timeout)
        self._raise_for_status(resp, "ping")
        return True

    async def list_indexes(self) -> List[str]:
        await self._ensure_connected()
        resp = await self.client.get("/_cat/indices", params={"h": "index", "format": "json"})
        self._raise_for_status(resp, "list_indexes")
        return [row["index"] for row in resp.json() if row.get("index")]

    async def delete_indexes(self, names: List[str]) -> None:
        if not names:
            return
        await self._ensure_connected()
        resp = await self.client.delete(f"/{','.join(names)}")
        self._raise_for_status(resp, "delete_indexes")
        logger.info("deleted_elasticsearch_indexes", indexes=names)

    async def create_index(self, name: str, body: Dict[str, Any]) -> None:
        await self._ensure_connected()
        resp = await self.client.put(f"/{name}", json=body)
        self._raise_for_status(resp, "create_index")
        logger.info("created_elasticsearch_index", index=name)

    async def bulk(self, commands: List[Dict[str, Any]], refresh: bool = True) -> BulkResponse:
        await self._ensure_connected()
        if not commands:
            return BulkResponse()
        payload = "".join(json.dumps(command) + "\n" for command in commands)
        try:
            resp = await self.client.post(
                "/_bulk",
                content=payload.encode("utf-8"),
                params={"refresh": "true" if refresh else "false"},
                headers={"Content-Type": "application/x-ndjson"},
            )
        except httpx.TimeoutException as e:
            # Reported like a 408 so that the indexer splits the batch
            logger.debug("bulk_timed_out", actions=len(commands) // 2, error=str(e))
            raise SearchBackendError(
                f"elasticsearch bulk timed out: {e}",
                status_code=408,
            ) from e
        self._raise_for_status(resp, "bulk")
        data = resp.json()
        result = BulkResponse(
            took=data.get("took", 0),
            errors=bool(data.get("errors")),
            items=data.get("items", []),
        )
        logger.debug("bulk_indexed", actions=len(commands) // 2, errors=result.errors)
        return result

    async def search(
        self,
        index: str,
        body: Dict[str, Any],
        from_: int = 0,
        size: int = 50,
    ) -> SearchHits:
        await self._ensure_connected()
        payload = dict(body)
        payload["from"] = from_
        payload["size"] = size
        payload["_source"] = False
        resp = await self.client.post(f"/{index}/_search", json=payload)
        self._raise_for_status(resp, "search")
        hits = resp.json().get("hits", {})
        total = hits.get("total", 0)
        # 7.x and later report {"value": n, "relation": "eq"}
        if isinstance(total, dict):
            total = total.get("value", 0)
        return SearchHits(
            total=total,
            ids=[str(hit["_id"]) for hit in hits.get("hits", [])],
        )

    async def refresh(self, indexes: List[str]) -> None:
        if not indexes:
            return
        await self._ensure_connected()
        resp = await self.client.post(f"/{','.join(indexes)}/_refresh")
        self._raise_for_status(resp, "refresh")
