"""Pinecone vector database client over the REST API.

Control plane (index listing, creation, status) goes to the controller
URL; upserts and queries go to the per-index host it reports.
"""
from typing import Any, Dict, List, Optional, Set

import httpx
import structlog

from askdocs import config
from askdocs.errors import ServiceUnavailable
from askdocs.rag.models import IndexDescription, QueryMatch, VectorRecord

logger = structlog.get_logger()

API_VERSION = "2024-07"


class PineconeClient:
    """Async Pinecone client exposing the vector database operations."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        controller_url: Optional[str] = None,
        cloud: Optional[str] = None,
        region: Optional[str] = None,
        namespace: str = "",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Pinecone API key (defaults to config.PINECONE_API_KEY)
            controller_url: Control plane URL (defaults to config)
            cloud: Serverless cloud for new indexes
            region: Serverless region for new indexes
            namespace: Namespace used for upserts and queries
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.api_key = api_key or config.PINECONE_API_KEY
        if not self.api_key:
            raise ValueError("PINECONE_API_KEY is not configured")

        self.controller_url = (controller_url or config.PINECONE_CONTROLLER_URL).rstrip("/")
        self.cloud = cloud or config.PINECONE_CLOUD
        self.region = region or config.PINECONE_REGION
        self.namespace = namespace
        self.timeout = timeout or config.HTTP_TIMEOUT
        self.transport = transport

    async def _request(self, method: str, url: str, payload: Optional[Dict] = None) -> Dict[str, Any]:
        headers = {
            "Api-Key": self.api_key,
            "X-Pinecone-API-Version": API_VERSION,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, json=payload, headers=headers)
                response.raise_for_status()
                return response.json() if response.content else {}

        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error("pinecone_connection_error", error=str(e), url=url)
            raise ServiceUnavailable("pinecone", str(e)) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "pinecone_http_error",
                error=str(e),
                status_code=e.response.status_code,
                url=url,
            )
            raise

    @staticmethod
    def _description(data: Dict[str, Any]) -> IndexDescription:
        return IndexDescription(
            name=data["name"],
            dimension=data["dimension"],
            metric=data.get("metric", "cosine"),
            ready=bool(data.get("status", {}).get("ready", False)),
            host=data.get("host"),
        )

    async def _data_plane_url(self, index_name: str, path: str) -> str:
        host = (await self.describe_index(index_name)).host
        if not host:
            raise RuntimeError(f"Index '{index_name}' has no host yet")
        if not host.startswith("http"):
            host = f"https://{host}"
        return f"{host}{path}"

    async def list_indexes(self) -> Set[str]:
        data = await self._request("GET", f"{self.controller_url}/indexes")
        return {index["name"] for index in data.get("indexes", [])}

    async def create_index(self, name: str, dimension: int, metric: str = "cosine") -> None:
        payload = {
            "name": name,
            "dimension": dimension,
            "metric": metric,
            "spec": {"serverless": {"cloud": self.cloud, "region": self.region}},
        }
        await self._request("POST", f"{self.controller_url}/indexes", payload)
        logger.info("pinecone_index_create_requested", name=name, dimension=dimension, metric=metric)

    async def describe_index(self, name: str) -> IndexDescription:
        data = await self._request("GET", f"{self.controller_url}/indexes/{name}")
        return self._description(data)

    async def upsert(self, index_name: str, records: List[VectorRecord]) -> int:
        if not records:
            return 0

        url = await self._data_plane_url(index_name, "/vectors/upsert")
        data = await self._request(
            "POST",
            url,
            {"vectors": [record.to_dict() for record in records], "namespace": self.namespace},
        )
        upserted = data.get("upsertedCount", len(records))

        logger.info("pinecone_vectors_upserted", index_name=index_name, count=upserted)
        return upserted

    async def query(
        self,
        index_name: str,
        vector: List[float],
        top_k: int = 10,
        include_metadata: bool = True,
        include_values: bool = False,
    ) -> List[QueryMatch]:
        url = await self._data_plane_url(index_name, "/query")
        data = await self._request(
            "POST",
            url,
            {
                "vector": vector,
                "topK": top_k,
                "includeMetadata": include_metadata,
                "includeValues": include_values,
                "namespace": self.namespace,
            },
        )

        matches = [
            QueryMatch(
                id=match["id"],
                score=match.get("score", 0.0),
                metadata=match.get("metadata") or {},
                values=match.get("values") if include_values else None,
            )
            for match in data.get("matches", [])
        ]

        logger.info("pinecone_query_completed", index_name=index_name, top_k=top_k, results_found=len(matches))
        return matches
