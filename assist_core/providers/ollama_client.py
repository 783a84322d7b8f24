"""Ollama Provider 适配器。

- 非流式: POST {base_url}/api/chat，stream=false，响应为单个 JSON 文档。
- 流式:   同一端点，stream=true，响应为逐行 JSON，由 streaming.decoder 解码。
- 模型列表: GET {base_url}/api/tags。

httpx 异常在这里统一转换为 domain.exceptions 中的业务异常。
"""

import json
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from assist_core.config.settings import settings
from assist_core.domain.exceptions import ApiError, DecodeError, NetworkError
from assist_core.domain.models import ChatMessage, ChatRequest, ChatResult, StreamEvent
from assist_core.infrastructure.logging.logger import logger
from assist_core.providers.registry import OLLAMA_CONFIG
from assist_core.streaming.decoder import decode_stream
from assist_core.tools.definitions import ToolCall


class OllamaClient:
    """Ollama Provider 客户端实现。"""

    name = "ollama"

    def __init__(self, cfg=settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = cfg
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.http_timeout,
            trust_env=False,
            transport=self._transport,
        )

    def _url(self, endpoint: str) -> str:
        return OLLAMA_CONFIG.url(endpoint, getattr(self._settings, "ollama_base_url", ""))

    # ---- 非流式 ----

    async def chat(self, req: ChatRequest) -> ChatResult:
        payload = req.to_payload(stream=False)
        logger.debug(
            "Sending chat request",
            extra={"extra": {"model": req.model, "messages": len(req.messages), "think": req.think}},
        )
        try:
            async with self._client() as client:
                resp = await client.post(self._url("chat"), json=payload)
        except httpx.RequestError as e:
            raise NetworkError(
                code="NETWORK_ERROR",
                message=f"Failed to connect to Ollama: {e}. Make sure Ollama is running.",
            )
        if not resp.is_success:
            raise ApiError(
                code="API_ERROR",
                message=f"Ollama API error: {resp.status_code}",
                http_status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(code="DECODE_ERROR", message=f"Failed to parse response: {e}")
        return self._parse_response(data, req)

    # ---- 流式 ----

    async def chat_stream(self, req: ChatRequest) -> AsyncIterator[StreamEvent]:
        payload = req.to_payload(stream=True)
        connected = False
        try:
            async with self._client() as client:
                async with client.stream("POST", self._url("chat"), json=payload) as resp:
                    connected = True
                    if not resp.is_success:
                        raise ApiError(
                            code="API_ERROR",
                            message=f"Ollama API error: {resp.status_code}",
                            http_status=resp.status_code,
                        )
                    async for event in decode_stream(resp.aiter_bytes()):
                        yield event
        except httpx.RequestError as e:
            if connected:
                raise NetworkError(code="NETWORK_ERROR", message=f"Stream error: {e}")
            raise NetworkError(
                code="NETWORK_ERROR",
                message=f"Failed to connect to Ollama: {e}. Make sure Ollama is running.",
            )

    # ---- 模型列表 ----

    async def list_models(self) -> List[str]:
        try:
            async with self._client() as client:
                resp = await client.get(self._url("tags"))
        except httpx.RequestError as e:
            raise NetworkError(
                code="NETWORK_ERROR",
                message=f"Failed to connect to Ollama: {e}. Make sure Ollama is running.",
            )
        if not resp.is_success:
            raise ApiError(
                code="API_ERROR",
                message=f"Ollama API error: {resp.status_code}",
                http_status=resp.status_code,
            )
        try:
            models = resp.json()["models"]
            return [str(m["name"]) for m in models]
        except (ValueError, KeyError, TypeError) as e:
            raise DecodeError(code="DECODE_ERROR", message=f"Failed to parse models response: {e!r}")

    # ---- 辅助方法 ----

    def _parse_response(self, data: Any, req: ChatRequest) -> ChatResult:
        if not isinstance(data, dict):
            raise DecodeError(code="DECODE_ERROR", message="Failed to parse response: expected a JSON object")
        raw_message = data.get("message")
        message = None
        if raw_message is not None:
            if not isinstance(raw_message, dict):
                raise DecodeError(code="DECODE_ERROR", message="Failed to parse response: invalid message")
            message = self._build_chat_message(raw_message)
        return ChatResult(model=req.model, message=message, done=bool(data.get("done", True)), raw=data)

    def _build_chat_message(self, payload: Dict[str, Any]) -> ChatMessage:
        """解析 Ollama message，兼容字符串形式的 arguments。"""

        content = payload.get("content") or ""
        if not isinstance(content, str):
            raise DecodeError(code="DECODE_ERROR", message="Failed to parse response: content is not text")
        tool_calls_raw = payload.get("tool_calls")
        tool_calls: Optional[List[ToolCall]] = None
        if tool_calls_raw is not None:
            if not isinstance(tool_calls_raw, list):
                raise DecodeError(code="DECODE_ERROR", message="Failed to parse response: invalid tool_calls")
            tool_calls = []
            for call in tool_calls_raw:
                func = call.get("function") if isinstance(call, dict) else None
                if not isinstance(func, dict) or not isinstance(func.get("name"), str):
                    raise DecodeError(code="DECODE_ERROR", message="Failed to parse response: invalid tool call")
                tool_calls.append(
                    ToolCall(name=func["name"], arguments=self._parse_arguments(func.get("arguments")))
                )
        return ChatMessage(
            role=payload.get("role") or "assistant",
            content=content,
            tool_calls=tuple(tool_calls) if tool_calls is not None else None,
        )

    @staticmethod
    def _parse_arguments(raw: Any) -> Dict[str, Any]:
        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                return {"_raw": raw}
            return parsed if isinstance(parsed, dict) else {"_raw": raw}
        return {}
