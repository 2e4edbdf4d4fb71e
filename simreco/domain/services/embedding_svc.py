# simreco/domain/services/embedding_svc.py

from __future__ import annotations
from typing import Optional, Sequence
import logging

import openai
from openai import AsyncOpenAI

from simreco.domain.errors import EmbeddingUnavailable
from simreco.domain.models.product import Product
from simreco.utils.backoff import BackoffPolicy, RetryExhausted

logger = logging.getLogger(__name__)

# Connection drops, timeouts (subclass of APIConnectionError), 429 and 5xx
RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)

# ---------- Text building -----------------------------------------------------

def product_text(product: Product) -> str:
    """Similarity representation of a product (same family/purpose)."""
    return " | ".join(filter(None, [
        product.name,
        f"Category: {product.category}" if product.category else None,
        product.description,
        " ".join(product.tags or []),
    ]))

def truncate_text(text: str, max_chars: int) -> str:
    """
    Cut `text` to at most `max_chars` characters.
    The cut lands on the last whitespace before the limit; a single word
    longer than the limit is cut mid-word.
    """
    text = (text or "").strip()
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    head = text[:max_chars]
    # Cutting exactly at a word end keeps the whole word
    if text[max_chars].isspace():
        return head.rstrip()
    cut = head.rfind(" ")
    if cut <= 0:
        return head
    return head[:cut].rstrip()

# ---------- Client ------------------------------------------------------------

class EmbeddingClient:
    """
    Stateless wrapper around the OpenAI embeddings endpoint.
    Retries transient provider errors with `BackoffPolicy`; every other
    failure surfaces as `EmbeddingUnavailable`.
    """

    def __init__(
        self,
        client,
        *,
        model: str,
        dimensions: int,
        max_chars: int = 8000,
        backoff: Optional[BackoffPolicy] = None,
    ):
        self.client = client  # AsyncOpenAI or anything exposing `embeddings.create`
        self.model = model
        self.dimensions = dimensions
        self.max_chars = max_chars
        self.backoff = backoff or BackoffPolicy()

    @classmethod
    def from_settings(cls, settings) -> Optional["EmbeddingClient"]:
        """Returns None when no API key is configured (vector path disabled)."""
        if not settings.OPENAI_API_KEY:
            return None
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.openai_timeout_s,
            max_retries=0,  # retries are owned by BackoffPolicy
        )
        return cls(
            client,
            model=settings.OPENAI_EMBEDDING_MODEL,
            dimensions=settings.embedding_dimensions,
            max_chars=settings.embedding_max_chars,
            backoff=BackoffPolicy.from_settings(settings),
        )

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed many texts with one provider call.
        Output order and length always match the input.
        """
        if not texts:
            return []
        inputs = [truncate_text(t, self.max_chars) for t in texts]
        if any(not t for t in inputs):
            raise EmbeddingUnavailable("Cannot embed empty text", details={"batch_size": len(inputs)})

        kwargs = {"model": self.model, "input": inputs}
        if self.model.startswith("text-embedding-3"):
            kwargs["dimensions"] = self.dimensions  # v3 models can shorten natively

        logger.debug(f"[embed] openai_call model={self.model} batch_size={len(inputs)}")
        try:
            resp = await self.backoff.run(
                lambda: self.client.embeddings.create(**kwargs),
                retry_on=RETRYABLE_ERRORS,
                label=f"embeddings.create(n={len(inputs)})",
            )
        except RetryExhausted as e:
            raise EmbeddingUnavailable(
                f"Embedding provider exhausted retries: {e.last_error}",
                details={"attempts": e.attempts, "error_type": type(e.last_error).__name__},
                transient=True,
            ) from e
        except openai.OpenAIError as e:
            # invalid input, auth... retrying cannot help
            raise EmbeddingUnavailable(
                f"Embedding provider rejected the request: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        data = sorted(resp.data, key=lambda d: getattr(d, "index", 0))
        if len(data) != len(inputs):
            raise EmbeddingUnavailable(
                f"Embedding batch mismatch expected={len(inputs)} got={len(data)}",
                details={"expected": len(inputs), "got": len(data)},
            )
        vectors = [list(item.embedding) for item in data]
        for v in vectors:
            if len(v) != self.dimensions:
                raise EmbeddingUnavailable(
                    f"Embedding dimension mismatch expected={self.dimensions} got={len(v)}",
                    details={"expected": self.dimensions, "got": len(v)},
                )
        return vectors
