"""OpenAI-compatible backend client wrapper with error handling."""
import httpx
from typing import List, Dict, Optional
import structlog

from tender_rag import config
from tender_rag.errors import ConfigurationError, UpstreamError

logger = structlog.get_logger()


class LLMClient:
    """Async client for an OpenAI-compatible embeddings/chat API."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        timeout: float = 60.0,
        name: str = "llm",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL, e.g. https://api.openai.com/v1
            api_key: Bearer credential; calls fail with ConfigurationError if empty
            timeout: Request timeout in seconds
            name: Backend name used in logs and error messages
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.name = name
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(f"{self.name} backend credential is not configured")
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def _post(self, path: str, payload: Dict) -> Dict:
        """POST a JSON payload and return the decoded body.

        Raises:
            ConfigurationError: If no credential is configured
            UpstreamError: On non-2xx responses, network failures, timeouts
                or a body that is not JSON
        """
        headers = self._headers()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}{path}",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(
                "backend_http_error",
                backend=self.name,
                path=path,
                status_code=status_code,
                body_preview=e.response.text[:100],
            )
            raise UpstreamError(
                f"{self.name} API failed: {status_code}", status_code=status_code
            ) from e
        except httpx.TimeoutException as e:
            logger.error("backend_timeout", backend=self.name, path=path, timeout=self.timeout)
            raise UpstreamError(f"{self.name} API timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error("backend_connection_error", backend=self.name, path=path, error=str(e))
            raise UpstreamError(f"{self.name} API unreachable: {e}") from e
        except ValueError as e:
            logger.error("backend_invalid_json", backend=self.name, path=path, error=str(e))
            raise UpstreamError(f"{self.name} API returned invalid JSON") from e

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to config.CHAT_MODEL)
            temperature: Sampling temperature
            max_tokens: Completion token limit

        Returns:
            The assistant message content (may be empty)

        Raises:
            ConfigurationError: If no credential is configured
            UpstreamError: On API errors or a malformed response
        """
        model = model or config.CHAT_MODEL

        payload = {
            "model": model,
            "messages": messages,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        logger.info(
            "chat_request",
            backend=self.name,
            model=model,
            message_count=len(messages),
        )

        data = await self._post("/chat/completions", payload)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("chat_response_malformed", backend=self.name, model=model)
            raise UpstreamError(f"{self.name} API returned no chat message") from e

        content = content or ""

        logger.info(
            "chat_response",
            backend=self.name,
            model=model,
            response_length=len(content),
        )

        return content

    async def embeddings(self, text: str, model: str = None) -> List[float]:
        """Generate an embedding for a text.

        Args:
            text: Text to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            Embedding vector

        Raises:
            ConfigurationError: If no credential is configured
            UpstreamError: On API errors or a malformed response
        """
        model = model or config.EMBEDDING_MODEL

        payload = {
            "model": model,
            "input": text,
        }

        logger.debug(
            "embedding_request",
            backend=self.name,
            model=model,
            text_length=len(text),
        )

        data = await self._post("/embeddings", payload)

        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("embedding_response_malformed", backend=self.name, model=model)
            raise UpstreamError(f"{self.name} API returned no embedding") from e

        if not isinstance(embedding, list) or not embedding:
            raise UpstreamError(f"{self.name} API returned an invalid embedding")

        logger.debug(
            "embedding_response",
            backend=self.name,
            model=model,
            dimension=len(embedding),
        )

        return embedding


def embedding_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> LLMClient:
    """Build the embedding backend client from configuration."""
    return LLMClient(
        base_url=config.EMBEDDING_BASE_URL,
        api_key=config.EMBEDDING_API_KEY,
        timeout=config.EMBEDDING_TIMEOUT,
        name="embedding",
        transport=transport,
    )


def chat_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> LLMClient:
    """Build the chat backend client from configuration."""
    return LLMClient(
        base_url=config.CHAT_BASE_URL,
        api_key=config.CHAT_API_KEY,
        timeout=config.CHAT_TIMEOUT,
        name="chat",
        transport=transport,
    )
