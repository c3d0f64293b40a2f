"""Ollama client wrapper with error handling."""
from typing import Dict, List, Optional

import httpx
import structlog

from askdocs import config
from askdocs.errors import ServiceUnavailable

logger = structlog.get_logger()


class OllamaClient:
    """Async client for interacting with the Ollama API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            timeout: Request timeout in seconds (defaults to config.HTTP_TIMEOUT)
            transport: Optional httpx transport, used by tests
        """
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.timeout = timeout or config.HTTP_TIMEOUT
        self.transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            transport=self.transport,
        )

    async def _post(self, path: str, payload: Dict) -> Dict:
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
                response.raise_for_status()
                return response.json()

        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url, path=path)
            raise ServiceUnavailable("ollama", str(e)) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "ollama_http_error",
                error=str(e),
                status_code=e.response.status_code,
                path=path,
            )
            raise

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict:
        """Send a non-streaming chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to config.CHAT_MODEL)
            temperature: Sampling temperature (0.0-2.0)

        Returns:
            Response dict with 'message' containing 'content'

        Raises:
            ServiceUnavailable: If Ollama cannot be reached
            httpx.HTTPStatusError: On API errors
        """
        model = model or config.CHAT_MODEL

        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
        }

        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        logger.info("ollama_chat_request", model=model, message_count=len(messages))

        data = await self._post("/api/chat", payload)

        logger.info(
            "ollama_chat_response",
            model=model,
            response_length=len(data.get("message", {}).get("content", "")),
        )

        return data

    async def embed(self, texts: List[str], model: Optional[str] = None) -> List[List[float]]:
        """Generate embeddings for a batch of texts in one request.

        Args:
            texts: Texts to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            One embedding per input text, in input order

        Raises:
            ServiceUnavailable: If Ollama cannot be reached
            httpx.HTTPStatusError: On API errors
        """
        model = model or config.EMBEDDING_MODEL

        logger.debug("ollama_embed_request", model=model, input_count=len(texts))

        data = await self._post("/api/embed", {"model": model, "input": texts})
        embeddings = data.get("embeddings", [])

        logger.debug(
            "ollama_embed_response",
            model=model,
            count=len(embeddings),
            dimension=len(embeddings[0]) if embeddings else 0,
        )

        return embeddings

    async def list_models(self) -> List[str]:
        """List all available Ollama models.

        Returns:
            List of model names
        """
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
                return [m["name"] for m in data.get("models", [])]
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error("ollama_list_models_error", error=str(e))
            raise ServiceUnavailable("ollama", str(e)) from e
