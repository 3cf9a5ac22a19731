"""Query embedding generation.

Turns query text into a single unit-length ``float32`` vector:

1. Tokenize into ``input_ids`` and ``attention_mask``
2. Reject inputs with no attended tokens
3. Run the encoder forward pass to get per-token hidden states (L, D)
4. Mean-pool over attended tokens only; padding is excluded from both the
   sum and the divisor
5. L2-normalize; a zero or non-finite norm is an error, never NaN output

The transform is purely numeric and deterministic for fixed weights.
"""

import time
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np
import structlog

from .errors import (
    DegenerateEmbeddingError,
    EmptyInputError,
    ForwardPassError,
    TokenizationError,
)

logger = structlog.get_logger("search_service.embedding_generator")


class Encoder(Protocol):
    """Tokenizer and forward pass supplied by a pretrained-model runtime."""

    name: str

    def tokenize(self, text: str) -> Tuple[List[int], List[int]]:
        ...

    def forward(self, input_ids: Sequence[int], attention_mask: Sequence[int]) -> np.ndarray:
        ...


def mean_pool(hidden: np.ndarray, attention_mask: Sequence[int]) -> np.ndarray:
    """Average the hidden rows whose mask entry is 1.

    Parameters
    - hidden: Array of shape (L, D)
    - attention_mask: L entries of 0/1

    Returns
    - Pooled vector of shape (D,) in float64
    """
    hidden = np.asarray(hidden)
    mask = np.asarray(attention_mask)

    if hidden.ndim != 2 or mask.ndim != 1 or hidden.shape[0] != mask.shape[0]:
        raise ValueError(
            f"Hidden states {hidden.shape} do not match attention mask {mask.shape}"
        )

    attended = mask == 1
    count = int(attended.sum())
    if count == 0:
        raise EmptyInputError("Invalid input: empty attention mask")

    return hidden[attended].sum(axis=0, dtype=np.float64) / count


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale ``vector`` to unit Euclidean norm."""
    vector = np.asarray(vector, dtype=np.float64)
    if not np.isfinite(vector).all():
        raise DegenerateEmbeddingError("Pooled embedding contains non-finite values")

    norm = float(np.linalg.norm(vector))
    if norm == 0.0 or not np.isfinite(norm):
        raise DegenerateEmbeddingError(f"Cannot normalize embedding with norm {norm}")

    return vector / norm


class EmbeddingGenerator:
    """Produces normalized query vectors from text.

    Parameters
    - encoder: Shared, read-only tokenizer/model pair
    - metrics_collector: Optional ``MetricsCollector`` for timings
    """

    def __init__(self, encoder: Encoder, metrics_collector=None):
        self.encoder = encoder
        self.metrics_collector = metrics_collector

    @property
    def model_name(self) -> str:
        return getattr(self.encoder, "name", "encoder")

    def embed(self, text: str) -> np.ndarray:
        """Embed ``text`` into a unit-length ``float32`` vector.

        Raises
        - ``TokenizationError``: the tokenizer failed
        - ``EmptyInputError``: no tokens to attend to
        - ``ForwardPassError``: the encoder failed or returned a bad shape
        - ``DegenerateEmbeddingError``: the pooled vector cannot be normalized
        """
        started = time.time()
        logger.debug("Generating embedding", text=text)

        try:
            input_ids, attention_mask = self.encoder.tokenize(text)
        except Exception as e:
            logger.error("Tokenization failed", error=str(e))
            raise TokenizationError(f"Failed to encode text: {e}") from e

        if len(input_ids) != len(attention_mask):
            raise TokenizationError(
                f"Tokenizer returned {len(input_ids)} ids for {len(attention_mask)} mask entries"
            )
        if sum(1 for flag in attention_mask if flag == 1) == 0:
            raise EmptyInputError("Invalid input: empty attention mask")

        try:
            hidden = np.asarray(self.encoder.forward(input_ids, attention_mask))
        except Exception as e:
            logger.error("Model forward pass failed", error=str(e))
            raise ForwardPassError(f"Model forward pass failed: {e}") from e

        try:
            pooled = mean_pool(hidden, attention_mask)
        except ValueError as e:
            raise ForwardPassError(str(e)) from e

        vector = l2_normalize(pooled).astype(np.float32)

        duration = time.time() - started
        if self.metrics_collector is not None:
            self.metrics_collector.record_embedding(self.model_name, duration)

        logger.debug(
            "Embedding generation successful",
            dimension=int(vector.shape[0]),
            tokens=len(input_ids),
            duration_ms=duration * 1000,
        )
        return vector

    @property
    def dimension(self) -> Optional[int]:
        return getattr(self.encoder, "dimension", None)
