import asyncio

import pytest

from assist_core.domain.exceptions import EmptyResponseError, NetworkError, ValidationError
from assist_core.domain.models import ChatMessage, ChatResult
from assist_core.flows.orchestrator import QuickAnswerOrchestrator
from assist_core.prompts import QUICK_ANSWER_SYSTEM_PROMPT
from assist_core.tools.definitions import ToolCall
from assist_core.tools.executor import ToolExecutor, default_executor, default_tool_defs


class FakeProvider:
    name = "fake"

    def __init__(self, replies):
        self._replies = list(replies)
        self.requests = []

    async def chat(self, req):
        self.requests.append(req)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatResult(model=req.model, message=reply, raw={})


def _assistant(content, *calls):
    return ChatMessage(role="assistant", content=content, tool_calls=tuple(calls) if calls else None)


def _executor(output="Paris."):
    seen = []

    async def _search(args):
        seen.append(args["query"])
        return output

    return ToolExecutor({"web_search": _search}, default_tool_defs()), seen


def test_answer_without_tool_calls():
    provider = FakeProvider([_assistant("Paris is the capital of France.")])
    executor, seen = _executor()
    answer = asyncio.run(QuickAnswerOrchestrator(provider, executor).run("capital of France?", "m", True))

    assert answer == "Paris is the capital of France."
    assert len(provider.requests) == 1
    assert seen == []
    first = provider.requests[0]
    assert [m.role for m in first.messages] == ["system", "user"]
    assert first.messages[0].content == QUICK_ANSWER_SYSTEM_PROMPT
    assert first.messages[1].content == "capital of France? /think"
    assert first.think is True
    assert first.tools[0].name == "web_search"


def test_empty_tool_call_list_counts_as_no_tools():
    provider = FakeProvider([ChatMessage(role="assistant", content="done", tool_calls=())])
    executor, _ = _executor()
    assert asyncio.run(QuickAnswerOrchestrator(provider, executor).run("q", "m", False)) == "done"
    assert len(provider.requests) == 1


def test_tool_round_then_second_call():
    provider = FakeProvider(
        [
            _assistant("", ToolCall(name="web_search", arguments={"query": "capital of France"})),
            _assistant("The capital of France is Paris."),
        ]
    )
    executor, seen = _executor("Paris.")
    answer = asyncio.run(QuickAnswerOrchestrator(provider, executor).run("capital?", "m", False))

    assert answer == "The capital of France is Paris."
    assert seen == ["capital of France"]
    second = provider.requests[1]
    assert [m.role for m in second.messages] == ["system", "user", "assistant", "tool"]
    assert second.messages[1].content == "capital? /no_think"
    assert second.messages[2].tool_calls[0].name == "web_search"
    assert second.messages[3].tool_name == "web_search"
    assert second.messages[3].content == "Paris."
    assert second.tools == provider.requests[0].tools
    # 第一次请求的消息列表不受后续追加影响
    assert len(provider.requests[0].messages) == 2


def test_tool_failure_is_captured_and_second_call_proceeds():
    class NoKey:
        web_search_api_url = "https://search.test"
        web_search_api_key = ""
        http_timeout = 1.0

    provider = FakeProvider(
        [
            _assistant("", ToolCall(name="web_search", arguments={"query": "x"})),
            _assistant("Could not verify."),
        ]
    )
    answer = asyncio.run(QuickAnswerOrchestrator(provider, default_executor(NoKey())).run("x?", "m", False))

    assert answer == "Could not verify."
    tool_msg = provider.requests[1].messages[3]
    assert "not configured" in tool_msg.content
    assert tool_msg.content.startswith("Search failed: ")


def test_unknown_and_empty_tool_calls_are_skipped():
    provider = FakeProvider(
        [
            _assistant(
                "thinking",
                ToolCall(name="calculator", arguments={"expr": "1+1"}),
                ToolCall(name="web_search", arguments={"query": ""}),
                ToolCall(name="web_search", arguments={"query": "b"}),
            ),
            _assistant("final", ToolCall(name="web_search", arguments={"query": "again"})),
        ]
    )
    executor, seen = _executor("r")
    answer = asyncio.run(QuickAnswerOrchestrator(provider, executor).run("q", "m", False))

    assert answer == "final"
    assert seen == ["b"]
    messages = provider.requests[1].messages
    assert [m.role for m in messages] == ["system", "user", "assistant", "tool"]
    assert messages[2].content == "thinking"
    assert len(messages[2].tool_calls) == 3
    assert len(provider.requests) == 2


def test_missing_message_is_reported():
    provider = FakeProvider([None])
    executor, _ = _executor()
    with pytest.raises(EmptyResponseError) as exc:
        asyncio.run(QuickAnswerOrchestrator(provider, executor).run("q", "m", False))
    assert exc.value.message == "No response from model"


def test_second_call_failure_propagates():
    provider = FakeProvider(
        [
            _assistant("", ToolCall(name="web_search", arguments={"query": "q"})),
            NetworkError(code="NETWORK_ERROR", message="Failed to connect to Ollama"),
        ]
    )
    executor, _ = _executor()
    with pytest.raises(NetworkError):
        asyncio.run(QuickAnswerOrchestrator(provider, executor).run("q", "m", False))


def test_empty_text_rejected_before_any_call():
    provider = FakeProvider([])
    executor, _ = _executor()
    with pytest.raises(ValidationError):
        asyncio.run(QuickAnswerOrchestrator(provider, executor).run("   ", "m", False))
    assert provider.requests == []


def test_malformed_search_url_does_not_abort_second_call():
    class BadUrl:
        web_search_api_url = "http://example.com:notaport/search"
        web_search_api_key = "secret-key"
        http_timeout = 1.0

    provider = FakeProvider(
        [
            _assistant("", ToolCall(name="web_search", arguments={"query": "x"})),
            _assistant("final"),
        ]
    )
    answer = asyncio.run(QuickAnswerOrchestrator(provider, default_executor(BadUrl())).run("x?", "m", False))

    assert answer == "final"
    assert provider.requests[1].messages[3].content.startswith("Search failed: ")
