"""Scriptorium exception hierarchy.

ServiceError subclasses wrap failures of the external collaborators
(embedding model, chat model, vector index). ValidationError is raised before
any external call is made. ConfigError lives in ``scriptorium.config``.
"""

from __future__ import annotations


class ScriptoriumError(Exception):
    """Base class for all scriptorium errors."""


# ---------------------------------------------------------------------------
# External service failures
# ---------------------------------------------------------------------------


class ServiceError(ScriptoriumError):
    """An embedding, chat, or vector store call failed."""


class EmbeddingServiceError(ServiceError):
    """The embedding model call failed or returned an unusable vector."""


class ChatServiceError(ServiceError):
    """The chat model call (blocking or streaming) failed."""


class VectorStoreError(ServiceError):
    """A vector index operation failed."""


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class ValidationError(ScriptoriumError, ValueError):
    """Invalid input rejected before any external call."""


class UnknownDocumentError(ValidationError):
    """A tool call named a document or tool outside the fixed registry."""


# ---------------------------------------------------------------------------
# Model behaviour
# ---------------------------------------------------------------------------


class DegenerateModelResponse(ScriptoriumError):
    """The model returned neither content nor a tool call."""

    def __init__(self, message: str = "No response generated") -> None:
        super().__init__(message)


class ToolLoopExhausted(DegenerateModelResponse):
    """The model kept requesting tools past the iteration cap."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            f"No response generated after {max_iterations} model calls "
            "(the model kept requesting documents)"
        )
        self.max_iterations = max_iterations
