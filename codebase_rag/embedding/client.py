"""
Embedding API Client Module

Provides async/sync HTTP clients for getting text embeddings from an
OpenAI-compatible embeddings endpoint.
"""

import asyncio
import aiohttp
import requests
import numpy as np
from typing import List, Dict, Any, Optional
from tqdm import tqdm

from ..exceptions import EmbeddingUnavailable, MissingCredential


class EmbeddingClient:
    """
    Client for getting embeddings from remote API.

    Supports OpenAI-compatible API format. Every failure surfaces as
    EmbeddingUnavailable; nothing is skipped silently.
    """

    def __init__(
        self,
        api_url: str,
        model_name: str = "text-embedding-ada-002",
        api_key: Optional[str] = None,
        batch_size: int = 32,
        max_retries: int = 1,
        timeout: int = 60,
        require_api_key: bool = True
    ):
        """
        Initialize embedding client.

        Args:
            api_url: API endpoint URL (e.g., "https://api.openai.com/v1/embeddings")
            model_name: Model name to use
            api_key: API key for authentication
            batch_size: Number of texts to embed in one request
            max_retries: Maximum number of attempts per batch
            timeout: Request timeout in seconds
            require_api_key: Fail at construction if no key is given

        Raises:
            MissingCredential: If a key is required and missing or blank
        """
        if require_api_key and not (api_key and api_key.strip()):
            raise MissingCredential("Please provide a valid API key for the embedding service.")

        self.api_url = api_url
        self.model_name = model_name
        self.api_key = api_key
        self.batch_size = batch_size
        self.max_retries = max(1, max_retries)
        self.timeout = timeout

        # Store embedding dimension (will be set after first call)
        self.embedding_dim = None

    def embed_texts(
        self,
        texts: List[str],
        show_progress: bool = True
    ) -> np.ndarray:
        """
        Embed multiple texts synchronously.

        Args:
            texts: List of texts to embed
            show_progress: Whether to show progress bar

        Returns:
            numpy array of shape (len(texts), embedding_dim)
        """
        all_embeddings = []

        # Process in batches
        for i in tqdm(
            range(0, len(texts), self.batch_size),
            desc="Embedding texts",
            disable=not show_progress
        ):
            batch = texts[i:i + self.batch_size]
            embeddings = self._embed_batch_sync(batch)
            all_embeddings.extend(embeddings)

        return self._to_array(all_embeddings)

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a single text and return a vector of shape (embedding_dim,)."""
        return self.embed_texts([text], show_progress=False)[0]

    async def embed_texts_async(
        self,
        texts: List[str],
        show_progress: bool = True
    ) -> np.ndarray:
        """
        Embed multiple texts asynchronously.

        Batches are sent concurrently; the result keeps input order.

        Args:
            texts: List of texts to embed
            show_progress: Whether to show progress bar

        Returns:
            numpy array of shape (len(texts), embedding_dim)
        """
        batches = [
            texts[i:i + self.batch_size]
            for i in range(0, len(texts), self.batch_size)
        ]
        results: List[Optional[List[List[float]]]] = [None] * len(batches)

        async def run(idx: int, session: aiohttp.ClientSession, batch: List[str]) -> int:
            results[idx] = await self._embed_batch_async(session, batch)
            return idx

        async with aiohttp.ClientSession() as session:
            tasks = [run(i, session, batch) for i, batch in enumerate(batches)]
            for task in tqdm(
                asyncio.as_completed(tasks),
                total=len(tasks),
                desc="Embedding texts",
                disable=not show_progress
            ):
                await task

        all_embeddings = [emb for batch_embs in results for emb in batch_embs]
        return self._to_array(all_embeddings)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _parse_response(self, data: Any, expected: int) -> List[List[float]]:
        """Pull embeddings out of an OpenAI-style response body."""
        try:
            items = sorted(data["data"], key=lambda item: item.get("index", 0))
            embeddings = [[float(x) for x in item["embedding"]] for item in items]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise EmbeddingUnavailable(f"Malformed embedding response: {e}") from e

        if len(embeddings) != expected:
            raise EmbeddingUnavailable(
                f"Embedding response has {len(embeddings)} vectors for {expected} inputs"
            )
        return embeddings

    def _embed_batch_sync(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts synchronously."""
        payload = {
            "input": texts,
            "model": self.model_name
        }

        for attempt in range(self.max_retries):
            try:
                response = requests.post(
                    self.api_url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self.timeout
                )
                response.raise_for_status()
                return self._parse_response(response.json(), len(texts))

            except (requests.RequestException, ValueError, EmbeddingUnavailable) as e:
                if attempt == self.max_retries - 1:
                    raise EmbeddingUnavailable(
                        f"Failed to get embeddings after {self.max_retries} attempts: {e}"
                    ) from e
                print(f"Retry {attempt + 1}/{self.max_retries} after error: {e}")

    async def _embed_batch_async(
        self,
        session: aiohttp.ClientSession,
        texts: List[str]
    ) -> List[List[float]]:
        """Embed a batch of texts asynchronously."""
        payload = {
            "input": texts,
            "model": self.model_name
        }

        for attempt in range(self.max_retries):
            try:
                async with session.post(
                    self.api_url,
                    json=payload,
                    headers=self._headers(),
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    response.raise_for_status()
                    data = await response.json()
                    return self._parse_response(data, len(texts))

            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, EmbeddingUnavailable) as e:
                if attempt == self.max_retries - 1:
                    raise EmbeddingUnavailable(
                        f"Failed to get embeddings after {self.max_retries} attempts: {e}"
                    ) from e
                print(f"Retry {attempt + 1}/{self.max_retries} after error: {e}")
                await asyncio.sleep(1)

    def _to_array(self, embeddings: List[List[float]]) -> np.ndarray:
        """Stack vectors, enforcing one dimension for everything this client returns."""
        if not embeddings:
            return np.zeros((0, self.embedding_dim or 0), dtype=np.float32)

        dims = {len(e) for e in embeddings}
        if len(dims) != 1 or 0 in dims:
            raise EmbeddingUnavailable(f"Inconsistent embedding dimensions: {sorted(dims)}")

        dim = dims.pop()
        if self.embedding_dim is None:
            self.embedding_dim = dim
        elif dim != self.embedding_dim:
            raise EmbeddingUnavailable(
                f"Embedding dimension changed from {self.embedding_dim} to {dim}"
            )

        return np.array(embeddings, dtype=np.float32)

    def get_info(self) -> Dict[str, Any]:
        """Get client information."""
        return {
            "api_url": self.api_url,
            "model_name": self.model_name,
            "batch_size": self.batch_size,
            "embedding_dim": self.embedding_dim,
            "has_api_key": bool(self.api_key)
        }
