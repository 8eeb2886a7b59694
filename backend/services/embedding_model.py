"""Embedding client for an OpenAI-compatible embeddings endpoint (e.g. Ollama)."""
import math
import time
import logging
from numbers import Real
from typing import Any, List, Optional
import httpx
from config import EMBEDDING_API_KEY, EMBEDDING_BASE_URL, EMBEDDING_MODEL
from services.errors import InvalidResponse, ServiceUnavailable

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Thin synchronous wrapper around a remote text embedding endpoint.

    Retries are deliberately left to callers.
    """

    def __init__(
        self,
        base_url: str = EMBEDDING_BASE_URL,
        model_name: str = EMBEDDING_MODEL,
        api_key: Optional[str] = EMBEDDING_API_KEY,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding client.

        Args:
            base_url: Base URL of the OpenAI-compatible API (e.g. http://localhost:11434/v1)
            model_name: Embedding model identifier (default: nomic-embed-text)
            api_key: Optional bearer token; local Ollama needs none
            timeout: Request timeout in seconds
        """
        if not base_url:
            raise ValueError("EMBEDDING_BASE_URL is required")

        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.api_key = api_key
        self.timeout = timeout
        self.api_url = f"{self.base_url}/embeddings"

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ServiceUnavailable: If the endpoint is unreachable or returns an error status
            InvalidResponse: If the response is malformed
        """
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in a single API call.

        Args:
            texts: List of texts to embed

        Returns:
            One embedding vector per input text, in input order

        Raises:
            ServiceUnavailable: If the endpoint is unreachable or returns an error status
            InvalidResponse: If texts is empty or the response is malformed
        """
        if not texts:
            raise InvalidResponse("Texts list cannot be empty", details={"model": self.model_name})

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {"model": self.model_name, "input": texts}

        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.api_url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Embedding request timed out after {self.timeout}s")
            raise ServiceUnavailable(
                f"Embedding request timed out after {self.timeout}s",
                details={"model": self.model_name, "original_error": str(e)}
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Embedding endpoint unreachable: {e}")
            raise ServiceUnavailable(
                f"Embedding service unreachable: {e}",
                details={"model": self.model_name, "url": self.api_url}
            ) from e

        elapsed = time.time() - start_time

        if not 200 <= response.status_code < 300:
            error_msg = f"Embeddings HTTP {response.status_code}: {response.text}"
            logger.error(error_msg)
            raise ServiceUnavailable(
                error_msg,
                details={"model": self.model_name, "status_code": response.status_code}
            )

        try:
            body = response.json()
        except ValueError as e:
            raise InvalidResponse("Embedding response is not valid JSON", details={"model": self.model_name}) from e

        embeddings = self._parse_embeddings(body, expected=len(texts))
        logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")
        return embeddings

    def _parse_embeddings(self, body: Any, expected: int) -> List[List[float]]:
        """Validate an OpenAI-style {"data": [{"embedding": [...]}, ...]} body."""
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise InvalidResponse("Invalid embeddings response format: missing 'data' array")

        if len(data) != expected:
            raise InvalidResponse(
                f"Expected {expected} embeddings, got {len(data)}",
                details={"expected": expected, "received": len(data)}
            )

        # Items may carry an explicit index; order by it when present
        if all(isinstance(item, dict) and isinstance(item.get("index"), int) for item in data):
            data = sorted(data, key=lambda item: item["index"])

        embeddings = []
        for position, item in enumerate(data):
            vector = item.get("embedding") if isinstance(item, dict) else None
            if (
                not isinstance(vector, list)
                or not vector
                or not all(isinstance(v, Real) and not isinstance(v, bool) for v in vector)
                or not all(math.isfinite(v) for v in vector)
            ):
                raise InvalidResponse(
                    f"Invalid embedding vector at position {position}",
                    details={"position": position}
                )
            embeddings.append([float(v) for v in vector])
        return embeddings
