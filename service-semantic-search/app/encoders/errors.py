"""Encoder exceptions.

Loading problems are fatal at startup. Everything raised while embedding a
query is scoped to that request and is not retried; these failures depend on
the input or the model, not on a transient condition.
"""

from libs.common.errors import RequestError, StartupError


class ModelArtifactMissingError(StartupError):
    """A required model artifact is not on disk."""

    kind = "model_artifact_missing"


class ModelLoadFailedError(StartupError):
    """Model artifacts exist but could not be loaded."""

    kind = "model_load_failed"


class EmbeddingError(RequestError):
    """Base exception for query embedding failures."""

    kind = "embedding_failed"
    public_message = "Failed to generate embedding"


class TokenizationError(EmbeddingError):
    kind = "tokenization_failed"


class EmptyInputError(EmbeddingError):
    """The attention mask has no attended tokens."""

    kind = "empty_input"


class ForwardPassError(EmbeddingError):
    kind = "forward_pass_failed"


class DegenerateEmbeddingError(EmbeddingError):
    """The pooled vector has zero or non-finite norm."""

    kind = "degenerate_embedding"
