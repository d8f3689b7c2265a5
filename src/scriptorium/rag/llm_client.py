"""LiteLLM client wrapper: embeddings, chat with tools, and token streaming.

All model calls in ingest, query and pray route through an explicitly
constructed LLMClient. Models are LiteLLM strings in 'provider/model' form;
the defaults route to a local Ollama server via ``api_base``.
LiteLLM's built-in retry is used (num_retries, exponential backoff).
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import litellm

from scriptorium.errors import ChatServiceError, EmbeddingServiceError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}

_LOCAL_PROVIDERS = frozenset({"ollama", "ollama_chat"})


def provider_of(model: str) -> str:
    """Return the provider prefix of *model* ('openai' when none is given)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


# ------------------------------------------------------------------
# Response model
# ------------------------------------------------------------------


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Any  # JSON string or already-decoded mapping

    def to_dict(self) -> dict[str, Any]:
        args = self.arguments if isinstance(self.arguments, str) else json.dumps(self.arguments)
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": args},
        }


@dataclass
class ChatMessage:
    role: str
    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        msg: dict[str, Any] = {"role": self.role, "content": self.content or ""}
        if self.tool_calls:
            msg["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        return msg


# ------------------------------------------------------------------
# Client
# ------------------------------------------------------------------


class LLMClient:
    """Handle for embedding and chat calls against one model endpoint.

    Args:
        api_base: Base URL for local providers (Ollama). Ignored for hosted
            providers, which resolve their own endpoint.
        num_retries: Retries on transient errors (exponential backoff).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_base: str | None = None,
        num_retries: int = 2,
        timeout: float = 120.0,
    ) -> None:
        self.api_base = api_base
        self.num_retries = num_retries
        self.timeout = timeout
        self._closed = False

    def embed(self, model: str, text: str) -> list[float]:
        """Call litellm.embedding() once and return the vector.

        Raises:
            EmbeddingServiceError: On network, timeout, or model error.
        """
        self._check_open()
        try:
            response = litellm.embedding(
                model=model,
                input=[text],
                num_retries=self.num_retries,
                timeout=self.timeout,
                **self._endpoint(model),
            )
            return list(response.data[0]["embedding"])
        except Exception as exc:
            raise EmbeddingServiceError(f"Embedding call to '{model}' failed: {exc}") from exc

    def chat(
        self,
        model: str,
        messages: list[dict],
        tools: list[dict] | None = None,
        temperature: float | None = None,
    ) -> ChatMessage:
        """Call litellm.completion() and return the first choice's message.

        Raises:
            ChatServiceError: On persistent API failure after retries.
        """
        self._check_open()
        kwargs: dict[str, Any] = {}
        if tools:
            kwargs["tools"] = tools
        if temperature is not None:
            kwargs["temperature"] = temperature
        try:
            response = litellm.completion(
                model=model,
                messages=messages,
                num_retries=self.num_retries,
                timeout=self.timeout,
                **self._endpoint(model),
                **kwargs,
            )
            message = response.choices[0].message
        except Exception as exc:
            raise ChatServiceError(f"Chat call to '{model}' failed: {exc}") from exc

        return ChatMessage(
            role=getattr(message, "role", None) or "assistant",
            content=message.content,
            tool_calls=[
                ToolCall(id=tc.id or f"call_{i}", name=tc.function.name, arguments=tc.function.arguments)
                for i, tc in enumerate(getattr(message, "tool_calls", None) or [])
            ],
        )

    def stream(self, model: str, messages: list[dict]) -> Iterator[str]:
        """Yield text fragments from a streaming completion in arrival order.

        The request is sent lazily on first iteration. Empty deltas are
        skipped; the iterator ends when the stream does.

        Raises:
            ChatServiceError: If the request or any later chunk fails.
        """
        self._check_open()
        try:
            response = litellm.completion(
                model=model,
                messages=messages,
                stream=True,
                num_retries=self.num_retries,
                timeout=self.timeout,
                **self._endpoint(model),
            )
            for part in response:
                delta = part.choices[0].delta.content if part.choices else None
                if delta:
                    yield delta
        except Exception as exc:
            raise ChatServiceError(f"Streaming call to '{model}' failed: {exc}") from exc

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> LLMClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _endpoint(self, model: str) -> dict[str, str]:
        if self.api_base and provider_of(model) in _LOCAL_PROVIDERS:
            return {"api_base": self.api_base}
        return {}

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("LLMClient is closed")
