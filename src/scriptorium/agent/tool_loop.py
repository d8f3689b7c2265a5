"""Bounded tool-calling loop for prayer composition.

State machine per request:

    AWAIT_MODEL ─┬─ tool calls  → EXECUTE_TOOLS → AWAIT_MODEL
                 ├─ content     → DONE (content returned verbatim)
                 └─ neither     → DegenerateModelResponse

The conversation starts with a system message (instructions + document
catalog) and the raw request as the user message. Each fetched document is
returned as a tool message ending with a restatement of the original request,
which keeps the model on the prayer rather than a summary of the reference.

At most ``max_iterations`` model calls are made; a model that is still asking
for documents after that raises ToolLoopExhausted.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from scriptorium.agent.registry import DocumentId, DocumentRegistry
from scriptorium.errors import (
    DegenerateModelResponse,
    ToolLoopExhausted,
    UnknownDocumentError,
    ValidationError,
)
from scriptorium.rag.llm_client import LLMClient, ToolCall

DEFAULT_MAX_ITERATIONS = 10
FETCH_DOCUMENT = "fetch_document"

_SYSTEM_PROMPT = """\
You are a prayer composer for the holy city of Targossas. You write prayers in \
the style of the Breviary of Targossas.

Before writing, call the {tool} tool to read any reference document you need. \
Available documents:
{catalog}

When you write the prayer:
- Match the Breviary's style exactly (numbered lines, call-and-response with <brackets>)
- Use phrases like: "We pray...", "May we...", "So mote it be", "Amen"
- Reference: Lady Aurora, Lord Deucalion, Light, Fire, Good, Righteousness, Creation
- Be reverent and formal

CRITICAL: You must ONLY output prayer text. Never explain, discuss, or analyze. \
Only write the prayer itself."""

_REMINDER = """\


---

Reminder of the original request: write a prayer about: "{request}"
Do not summarise or discuss the document above. Output ONLY the prayer text."""


@dataclass
class ToolLoopResult:
    """Successful end state of the loop.

    Attributes:
        content: The model's final answer, verbatim.
        fetched: Document ids fetched, in call order (repeats included).
        iterations: Number of model calls made.
        messages: The full conversation, discarded by callers after use.
    """

    content: str
    fetched: list[DocumentId] = field(default_factory=list)
    iterations: int = 0
    messages: list[dict] = field(default_factory=list)


def build_tool_schema(registry: DocumentRegistry) -> list[dict[str, Any]]:
    """Return the OpenAI-style schema for the single ``fetch_document`` tool."""
    return [
        {
            "type": "function",
            "function": {
                "name": FETCH_DOCUMENT,
                "description": (
                    "Fetch the full text of a reference document from the "
                    "Targossas corpus by its id."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "document_id": {
                            "type": "string",
                            "enum": registry.ids(),
                            "description": "Id of the document to fetch.",
                        }
                    },
                    "required": ["document_id"],
                },
            },
        }
    ]


def initial_messages(request: str, registry: DocumentRegistry) -> list[dict]:
    system = _SYSTEM_PROMPT.format(tool=FETCH_DOCUMENT, catalog=registry.catalog())
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": request},
    ]


def resolve_call(call: ToolCall, registry: DocumentRegistry) -> DocumentId:
    """Validate one tool call and return the document it names.

    Raises:
        UnknownDocumentError: Unknown tool name or document id.
        ValidationError: Arguments are not a JSON object with ``document_id``.
    """
    if call.name != FETCH_DOCUMENT:
        raise UnknownDocumentError(f"Unknown tool {call.name!r}; only {FETCH_DOCUMENT} exists")

    args = call.arguments
    if isinstance(args, str):
        try:
            args = json.loads(args) if args.strip() else {}
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Malformed {FETCH_DOCUMENT} arguments: {call.arguments!r}") from exc
    if not isinstance(args, dict) or "document_id" not in args:
        raise ValidationError(f"{FETCH_DOCUMENT} requires a document_id argument, got {call.arguments!r}")

    return registry.resolve(args["document_id"])


def run_tool_loop(
    request: str,
    client: LLMClient,
    model: str,
    registry: DocumentRegistry,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    on_fetch: Callable[[DocumentId], None] | None = None,
) -> ToolLoopResult:
    """Drive the model until it answers, gives up, or hits the cap.

    Args:
        request: The raw user request.
        client: Open LLMClient handle.
        model: Tool-capable chat model (LiteLLM string).
        registry: Documents the model may fetch.
        max_iterations: Maximum number of model calls.
        on_fetch: Called with each document id as it is fetched.

    Returns:
        ToolLoopResult with the verbatim content.

    Raises:
        ValidationError: Blank request, bad cap, or invalid tool call.
        DegenerateModelResponse: Model returned neither content nor tool calls.
        ToolLoopExhausted: Still requesting tools after *max_iterations* calls.
        ChatServiceError: The chat call failed.
        OSError: A registered document could not be read.
    """
    if not request.strip():
        raise ValidationError("request must not be empty")
    if max_iterations < 1:
        raise ValidationError(f"max_iterations must be >= 1, got {max_iterations}")

    tools = build_tool_schema(registry)
    messages = initial_messages(request, registry)
    fetched: list[DocumentId] = []

    for iteration in range(1, max_iterations + 1):
        reply = client.chat(model, messages, tools=tools)

        if reply.tool_calls:
            # Validate every call before reading anything.
            targets = [(call, resolve_call(call, registry)) for call in reply.tool_calls]
            messages.append(reply.to_dict())
            for call, doc_id in targets:
                text = registry.read(doc_id)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "name": FETCH_DOCUMENT,
                        "content": text + _REMINDER.format(request=request),
                    }
                )
                fetched.append(doc_id)
                if on_fetch is not None:
                    on_fetch(doc_id)
            continue

        if reply.content and reply.content.strip():
            messages.append(reply.to_dict())
            return ToolLoopResult(
                content=reply.content,
                fetched=fetched,
                iterations=iteration,
                messages=messages,
            )

        raise DegenerateModelResponse()

    raise ToolLoopExhausted(max_iterations)
