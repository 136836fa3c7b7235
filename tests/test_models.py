"""Tests for data models."""

import pytest

from llm_workspace.models import (
    UNKNOWN_TOKENS,
    ContextWindow,
    ConversationTurn,
    GenerationOptions,
    GenerationRequest,
    MemoryRecord,
    TokenUsage,
)


def test_turn_defaults():
    turn = ConversationTurn(role="user", content="hello")
    assert turn.timestamp
    assert turn.model_id is None


def test_turn_rejects_unknown_role():
    with pytest.raises(ValueError):
        ConversationTurn(role="tool", content="x")


def test_memory_record_defaults():
    record = MemoryRecord(user_id="u1", content="likes tea")
    assert record.id
    assert record.kind == "message"
    assert record.importance == 5
    assert record.embedding is None
    assert record.metadata == {}


def test_memory_record_ids_are_unique():
    a = MemoryRecord(user_id="u1", content="a")
    b = MemoryRecord(user_id="u1", content="a")
    assert a.id != b.id


@pytest.mark.parametrize("importance", [-1, 11])
def test_memory_record_importance_range(importance):
    with pytest.raises(ValueError):
        MemoryRecord(user_id="u1", content="x", importance=importance)


def test_memory_record_rejects_unknown_kind():
    with pytest.raises(ValueError):
        MemoryRecord(user_id="u1", content="x", kind="rumour")


def test_context_window_estimated_size():
    window = ContextWindow(total_tokens=12, memory_tokens=30)
    assert window.estimated_size == 42
    assert window.relevant_memories == []


def test_generation_options_drop_unset():
    assert GenerationOptions().as_dict() == {}
    assert GenerationOptions(temperature=0.2, top_k=5).as_dict() == {"temperature": 0.2, "top_k": 5}


def test_generation_request_needs_exactly_one_input():
    GenerationRequest(model_id="gpt-4o", prompt="hi")
    GenerationRequest(model_id="gpt-4o", turns=(ConversationTurn(role="user", content="hi"),))
    with pytest.raises(ValueError):
        GenerationRequest(model_id="gpt-4o")
    with pytest.raises(ValueError):
        GenerationRequest(
            model_id="gpt-4o", prompt="hi",
            turns=(ConversationTurn(role="user", content="hi"),),
        )


def test_token_usage_unknown_by_default():
    usage = TokenUsage()
    assert usage.prompt_tokens == UNKNOWN_TOKENS
    assert not usage.known
    assert TokenUsage(3, 4, 7).known
