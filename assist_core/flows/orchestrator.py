"""快速问答编排：最多两轮调用、最多一轮工具执行。

流程：
1. 构造 system + user 两条消息（user 末尾追加思考模式标记）。
2. 携带工具列表做第一次非流式调用。
3. 若返回消息不含工具调用，直接以其内容作为答案。
4. 否则按顺序执行已知工具（未知工具静默跳过），把 assistant 消息和
   每条工具结果追加到会话中。
5. 第二次调用的返回即为最终答案；其中的工具调用不再执行。

工具失败只会变成结果文本，不会中断流程；两次调用的失败直接向上抛出。
"""

import logging
from typing import Any, Dict, List

from assist_core.domain.exceptions import EmptyResponseError, ValidationError
from assist_core.domain.models import ChatMessage, ChatRequest, ChatResult, Conversation
from assist_core.infrastructure.logging.logger import logger
from assist_core.prompts import QUICK_ANSWER_SYSTEM_PROMPT, with_thinking_marker
from assist_core.providers.base import ProviderClient
from assist_core.tools.definitions import ToolResult
from assist_core.tools.executor import ToolExecutor


class QuickAnswerOrchestrator:
    def __init__(
        self,
        provider_client: ProviderClient,
        tool_executor: ToolExecutor,
        system_prompt: str = QUICK_ANSWER_SYSTEM_PROMPT,
    ):
        self._provider_client = provider_client
        self._tool_executor = tool_executor
        self._system_prompt = system_prompt

    async def run(self, text: str, model: str, enable_thinking: bool) -> str:
        if not text.strip():
            logger.warning("Empty text provided")
            raise ValidationError(code="EMPTY_TEXT", message="Empty text")

        log_ctx: Dict[str, Any] = {"model": model, "think": enable_thinking}
        conversation = Conversation()
        conversation.append(ChatMessage(role="system", content=self._system_prompt))
        conversation.append(ChatMessage(role="user", content=with_thinking_marker(text, enable_thinking)))
        tool_defs = self._tool_executor.tool_defs

        self._log(logging.INFO, "Sending first request", log_ctx)
        first = await self._provider_client.chat(
            ChatRequest(model=model, messages=conversation.snapshot(), tools=tool_defs, think=enable_thinking)
        )
        assistant_msg = self._require_message(first)
        if not assistant_msg.tool_calls:
            self._log(logging.INFO, "Answered without tool calls", log_ctx)
            return assistant_msg.content

        results = await self._run_tools(assistant_msg, log_ctx)
        conversation.append(
            ChatMessage(role="assistant", content=assistant_msg.content, tool_calls=assistant_msg.tool_calls)
        )
        for result in results:
            conversation.append(ChatMessage(role="tool", content=result.output_text, tool_name=result.tool_name))

        self._log(logging.INFO, "Sending follow-up request", log_ctx, messages=len(conversation))
        second = await self._provider_client.chat(
            ChatRequest(model=model, messages=conversation.snapshot(), tools=tool_defs, think=enable_thinking)
        )
        return self._require_message(second).content

    async def _run_tools(self, assistant_msg: ChatMessage, log_ctx: Dict[str, Any]) -> List[ToolResult]:
        results: List[ToolResult] = []
        for call in assistant_msg.tool_calls or ():
            if not self._tool_executor.supports(call):
                self._log(logging.INFO, "Skipping tool call", log_ctx, tool_name=call.name)
                continue
            self._log(logging.INFO, "Tool call received", log_ctx, tool_name=call.name, tool_args=call.arguments)
            result = await self._tool_executor.execute(call)
            self._log(
                logging.INFO,
                "Tool execution finished",
                log_ctx,
                tool_name=call.name,
                result_preview=result.output_text[:200],
            )
            results.append(result)
        return results

    @staticmethod
    def _require_message(result: ChatResult) -> ChatMessage:
        if result.message is None:
            raise EmptyResponseError(code="EMPTY_RESPONSE", message="No response from model")
        return result.message

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
