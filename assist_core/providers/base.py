"""Provider 抽象接口。

编排层不直接依赖具体的 HTTP 调用，而是依赖以下协议：

- ProviderClient：对话补全后端（Ollama），负责把 ChatRequest 转成请求，
  并把响应解析为 ChatResult 或 StreamEvent 序列。
- TranslatorClient：单方向翻译调用，返回译文与检测到的源语言。

测试中可以用简单的假对象替换它们。
"""

from typing import AsyncIterator, List, Protocol

from assist_core.domain.models import ChatRequest, ChatResult, StreamEvent, TranslationResult


class ProviderClient(Protocol):
    """对话补全后端协议。"""

    name: str

    async def chat(self, req: ChatRequest) -> ChatResult:
        ...

    def chat_stream(self, req: ChatRequest) -> AsyncIterator[StreamEvent]:
        """执行一次流式调用，逐步产出事件，最后一个事件 is_final=True。"""

        ...

    async def list_models(self) -> List[str]:
        ...


class TranslatorClient(Protocol):
    name: str

    async def translate(self, text: str, target_language: str) -> TranslationResult:
        ...
