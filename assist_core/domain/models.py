"""统一的对话与结果数据模型。

本模块定义了编排流程与 Provider 之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant/tool）。
- ChatRequest: 发给 Ollama 的完整请求。
- ChatResult: 从响应解析后的统一结果。
- StreamEvent: 流式响应中解码出的单个事件。
- TranslationResult: 一次翻译调用的结果。

Provider 适配器只依赖这些模型，并负责 JSON 与模型之间的转换。
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List, Tuple

from assist_core.tools.definitions import ToolCall, ToolDef


# 消息角色类型（与 Ollama /api/chat 的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class ChatMessage:
    """一条对话消息，既可用于请求，也可用于响应。

    - tool_calls: role 为 "assistant" 且模型触发工具调用时，保存调用列表。
    - tool_name: role 为 "tool" 时，标记该结果来自哪个工具。
    """

    role: Role
    content: str
    tool_calls: Optional[Tuple[ToolCall, ...]] = None
    tool_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls is not None:
            payload["tool_calls"] = [
                {"type": "function", "function": {"name": c.name, "arguments": c.arguments}}
                for c in self.tool_calls
            ]
        if self.tool_name:
            payload["tool_name"] = self.tool_name
        return payload


@dataclass
class ChatRequest:
    """一次完整的聊天请求。"""

    model: str
    messages: List[ChatMessage]
    # 工具定义列表：为 None 时不在请求体中携带 tools 字段
    tools: Optional[List[ToolDef]] = None
    # 为 None 时不发送 think 字段（普通流式聊天）
    think: Optional[bool] = None

    def to_payload(self, stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_payload() for m in self.messages],
            "stream": stream,
        }
        if self.tools is not None:
            payload["tools"] = [t.to_schema() for t in self.tools]
        if self.think is not None:
            payload["think"] = self.think
        return payload


@dataclass
class ChatResult:
    """一次非流式调用的结果。message 为 None 表示模型未返回消息。"""

    model: str
    message: Optional[ChatMessage]
    done: bool = True
    raw: Optional[dict] = None


@dataclass(frozen=True)
class StreamEvent:
    """流式响应中的一个事件；is_final 为 True 的事件在每个流中恰好出现一次。"""

    content_fragment: str
    is_final: bool = False


@dataclass(frozen=True)
class TranslationResult:
    text: str
    detected_language: str


@dataclass
class Conversation:
    """单次编排过程中的消息序列，只追加、不修改。"""

    messages: List[ChatMessage] = field(default_factory=list)

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def snapshot(self) -> List[ChatMessage]:
        return list(self.messages)

    def __len__(self) -> int:
        return len(self.messages)
