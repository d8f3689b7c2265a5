"""Tests for the bounded tool-calling loop."""

from __future__ import annotations

import pytest

from scriptorium.agent.registry import DocumentId, DocumentRegistry
from scriptorium.agent.tool_loop import (
    FETCH_DOCUMENT,
    build_tool_schema,
    initial_messages,
    resolve_call,
    run_tool_loop,
)
from scriptorium.errors import (
    DegenerateModelResponse,
    ToolLoopExhausted,
    UnknownDocumentError,
    ValidationError,
)
from scriptorium.rag.llm_client import ChatMessage, ToolCall

BREVIARY = DocumentId.BREVIARY.value
TENETS = DocumentId.TENETS.value


@pytest.fixture
def registry(tmp_path) -> DocumentRegistry:
    (tmp_path / "breviary_of_targossas.txt").write_text("BREVIARY TEXT", encoding="utf-8")
    (tmp_path / "tenets_of_the_light.txt").write_text("TENETS TEXT", encoding="utf-8")
    (tmp_path / "chronicle_of_targossas.txt").write_text("CHRONICLE TEXT", encoding="utf-8")
    return DocumentRegistry(tmp_path)


# ------------------------------------------------------------------
# Schema + seed conversation
# ------------------------------------------------------------------


def test_tool_schema_enum_is_closed_registry(registry):
    (tool,) = build_tool_schema(registry)
    params = tool["function"]["parameters"]
    assert tool["function"]["name"] == FETCH_DOCUMENT
    assert params["properties"]["document_id"]["enum"] == registry.ids()
    assert params["required"] == ["document_id"]


def test_initial_messages_system_catalog_then_raw_request(registry):
    messages = initial_messages("a prayer for the harvest", registry)
    assert [m["role"] for m in messages] == ["system", "user"]
    assert registry.catalog() in messages[0]["content"]
    assert messages[1]["content"] == "a prayer for the harvest"


# ------------------------------------------------------------------
# Termination
# ------------------------------------------------------------------


@pytest.mark.parametrize("n", [0, 1, 3, 9])
def test_n_tool_turns_then_content(registry, llm, n):
    for _ in range(n):
        llm.queue_tool_call(BREVIARY)
    llm.queue_content("Amen.")

    result = run_tool_loop("harvest", llm, "m", registry)

    assert result.content == "Amen."
    assert result.fetched == [DocumentId.BREVIARY] * n
    assert result.iterations == n + 1
    assert len(llm.chat_calls) == n + 1


def test_content_returned_verbatim(registry, llm):
    text = "  1. We pray for Light.\n  <So mote it be>\n"
    llm.queue_content(text)
    assert run_tool_loop("light", llm, "m", registry).content == text


@pytest.mark.parametrize("content", [None, "", "   \n"])
def test_degenerate_response(registry, llm, content):
    llm.queue(ChatMessage(role="assistant", content=content))
    with pytest.raises(DegenerateModelResponse, match="No response generated"):
        run_tool_loop("x", llm, "m", registry)
    assert len(llm.chat_calls) == 1


def test_degenerate_after_tool_turn(registry, llm):
    llm.queue_tool_call(BREVIARY).queue(ChatMessage(role="assistant"))
    with pytest.raises(DegenerateModelResponse):
        run_tool_loop("x", llm, "m", registry)


def test_iteration_cap(registry, llm):
    for _ in range(20):
        llm.queue_tool_call(BREVIARY)

    with pytest.raises(ToolLoopExhausted) as exc_info:
        run_tool_loop("x", llm, "m", registry, max_iterations=4)

    assert exc_info.value.max_iterations == 4
    assert len(llm.chat_calls) == 4


def test_exhausted_is_degenerate_response():
    assert issubclass(ToolLoopExhausted, DegenerateModelResponse)


def test_content_on_last_allowed_iteration(registry, llm):
    llm.queue_tool_call(BREVIARY).queue_tool_call(TENETS).queue_content("Amen.")
    result = run_tool_loop("x", llm, "m", registry, max_iterations=3)
    assert result.iterations == 3


# ------------------------------------------------------------------
# Conversation growth
# ------------------------------------------------------------------


def test_tool_message_carries_document_and_reminder(registry, llm):
    llm.queue_tool_call(TENETS).queue_content("Amen.")

    result = run_tool_loop("the founding of the city", llm, "m", registry)

    second_call = llm.chat_calls[1]
    assert [m["role"] for m in second_call] == ["system", "user", "assistant", "tool"]
    assistant, tool = second_call[2], second_call[3]
    assert assistant["tool_calls"][0]["function"]["name"] == FETCH_DOCUMENT
    assert tool["tool_call_id"] == "call_0"
    assert tool["content"].startswith("TENETS TEXT")
    assert 'write a prayer about: "the founding of the city"' in tool["content"]
    assert result.messages[-1] == {"role": "assistant", "content": "Amen."}


def test_multiple_calls_in_one_turn(registry, llm):
    llm.queue_tool_call(BREVIARY, TENETS).queue_content("Amen.")
    fetched: list[DocumentId] = []

    result = run_tool_loop("x", llm, "m", registry, on_fetch=fetched.append)

    assert result.fetched == [DocumentId.BREVIARY, DocumentId.TENETS]
    assert fetched == result.fetched
    assert result.iterations == 2
    roles = [m["role"] for m in llm.chat_calls[1]]
    assert roles == ["system", "user", "assistant", "tool", "tool"]


def test_conversation_not_shared_between_runs(registry, llm):
    llm.queue_content("one").queue_content("two")
    run_tool_loop("first", llm, "m", registry)
    run_tool_loop("second", llm, "m", registry)
    assert len(llm.chat_calls[1]) == 2
    assert llm.chat_calls[1][1]["content"] == "second"


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


def test_unknown_document_rejected_before_any_read(registry, llm, tmp_path):
    (tmp_path / "breviary_of_targossas.txt").unlink()
    llm.queue(
        ChatMessage(
            role="assistant",
            tool_calls=[
                ToolCall(id="a", name=FETCH_DOCUMENT, arguments=f'{{"document_id": "{BREVIARY}"}}'),
                ToolCall(id="b", name=FETCH_DOCUMENT, arguments='{"document_id": "necronomicon"}'),
            ],
        )
    )
    with pytest.raises(UnknownDocumentError, match="necronomicon"):
        run_tool_loop("x", llm, "m", registry)


def test_unknown_tool_rejected(registry):
    call = ToolCall(id="a", name="delete_everything", arguments="{}")
    with pytest.raises(UnknownDocumentError, match="Unknown tool"):
        resolve_call(call, registry)


def test_mapping_arguments_accepted(registry):
    call = ToolCall(id="a", name=FETCH_DOCUMENT, arguments={"document_id": TENETS})
    assert resolve_call(call, registry) is DocumentId.TENETS


@pytest.mark.parametrize("args", ["{not json", "", '{"doc": "x"}', "[1, 2]"])
def test_malformed_arguments(registry, args):
    call = ToolCall(id="a", name=FETCH_DOCUMENT, arguments=args)
    with pytest.raises(ValidationError):
        resolve_call(call, registry)


def test_blank_request_rejected_before_model_call(registry, llm):
    llm.queue_content("x")
    with pytest.raises(ValidationError):
        run_tool_loop("  ", llm, "m", registry)
    assert llm.chat_calls == []


def test_bad_iteration_cap(registry, llm):
    with pytest.raises(ValidationError, match="max_iterations"):
        run_tool_loop("x", llm, "m", registry, max_iterations=0)
