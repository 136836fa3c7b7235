"""Tests for the litellm transport helpers."""

from types import SimpleNamespace

import litellm
import pytest

from llm_workspace.llm.client import (
    llm_complete,
    llm_stream,
    normalize_finish_reason,
    to_result,
)
from llm_workspace.models import UNKNOWN_TOKENS


def _response(text="Hello", finish_reason="stop", usage=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text), finish_reason=finish_reason)],
        usage=usage,
    )


def _chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class FakeStream:
    def __init__(self, chunks, fail_after=None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise ConnectionError("stream dropped")
            yield chunk

    async def aclose(self):
        self.closed = True


@pytest.mark.parametrize("reason, expected", [
    ("stop", "stop"),
    ("STOP", "stop"),
    ("end_turn", "stop"),
    ("stop_sequence", "stop"),
    ("max_tokens", "length"),
    ("MAX_TOKENS", "length"),
    ("length", "length"),
    ("SAFETY", "safety"),
    (None, None),
])
def test_normalize_finish_reason(reason, expected):
    assert normalize_finish_reason(reason) == expected


def test_to_result_with_usage():
    usage = SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    result = to_result(_response(usage=usage, finish_reason="end_turn"), "claude-3-opus")

    assert result.text == "Hello"
    assert result.model_id == "claude-3-opus"
    assert (result.usage.prompt_tokens, result.usage.completion_tokens, result.usage.total_tokens) == (10, 5, 15)
    assert result.finish_reason == "stop"
    assert result.raw is not None


def test_to_result_without_usage_reports_unknown():
    result = to_result(_response(usage=None, finish_reason=None), "gpt-4o")
    assert result.usage.total_tokens == UNKNOWN_TOKENS
    assert result.usage.prompt_tokens == UNKNOWN_TOKENS
    assert result.finish_reason is None


def test_to_result_partial_usage():
    usage = SimpleNamespace(prompt_tokens=7, completion_tokens=None, total_tokens=None)
    result = to_result(_response(usage=usage), "gpt-4o")
    assert result.usage.prompt_tokens == 7
    assert result.usage.completion_tokens == UNKNOWN_TOKENS
    assert result.usage.total_tokens == UNKNOWN_TOKENS


def test_to_result_derives_total():
    usage = SimpleNamespace(prompt_tokens=7, completion_tokens=3, total_tokens=None)
    assert to_result(_response(usage=usage), "gpt-4o").usage.total_tokens == 10


def test_to_result_empty_content():
    assert to_result(_response(text=None), "gpt-4o").text == ""


@pytest.mark.asyncio
async def test_llm_complete_passes_params(monkeypatch):
    captured = {}

    async def fake_acompletion(**kwargs):
        captured.update(kwargs)
        return _response()

    monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
    messages = [{"role": "user", "content": "hi"}]
    await llm_complete("openai/gpt-4o", messages, temperature=0.1)

    assert captured == {"model": "openai/gpt-4o", "messages": messages, "temperature": 0.1}


@pytest.mark.asyncio
async def test_llm_stream_yields_non_empty_deltas(monkeypatch):
    stream = FakeStream([_chunk("Hel"), _chunk(None), _chunk(""), _chunk("lo")])

    async def fake_acompletion(**kwargs):
        assert kwargs["stream"] is True
        return stream

    monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
    fragments = [f async for f in llm_stream("openai/gpt-4o", [])]

    assert fragments == ["Hel", "lo"]
    assert stream.closed


@pytest.mark.asyncio
async def test_llm_stream_releases_on_early_close(monkeypatch):
    stream = FakeStream([_chunk("a"), _chunk("b"), _chunk("c")])

    async def fake_acompletion(**kwargs):
        return stream

    monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
    gen = llm_stream("openai/gpt-4o", [])
    assert await gen.__anext__() == "a"
    await gen.aclose()

    assert stream.closed


@pytest.mark.asyncio
async def test_llm_stream_releases_on_error(monkeypatch):
    stream = FakeStream([_chunk("a"), _chunk("b")], fail_after=1)

    async def fake_acompletion(**kwargs):
        return stream

    monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
    with pytest.raises(ConnectionError):
        async for _ in llm_stream("openai/gpt-4o", []):
            pass
    assert stream.closed
