"""对外 API 服务模块。

AssistService 是界面层调用的命令入口：快速问答、翻译、流式聊天、
模型列表以及对应的取消操作。每类操作占用一个 slot，新请求会取代旧请求。

调用方只会得到三种结果之一：最终结果、一个 BusinessError，或 RequestCancelled。
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from assist_core.config.settings import settings
from assist_core.domain.exceptions import BusinessError
from assist_core.domain.models import ChatMessage, ChatRequest, TranslationResult
from assist_core.flows.lifecycle import (
    CHAT_STREAM,
    QUICK_ANSWER,
    TRANSLATE,
    CancelToken,
    RequestRegistry,
    run_in_slot,
)
from assist_core.flows.orchestrator import QuickAnswerOrchestrator
from assist_core.flows.translation import TranslationResolver
from assist_core.infrastructure.logging.logger import logger
from assist_core.providers.base import ProviderClient, TranslatorClient
from assist_core.providers.ollama_client import OllamaClient
from assist_core.providers.translate_client import GoogleTranslateClient
from assist_core.tools.executor import ToolExecutor, default_executor


REDACTED_KEYS = {"webSearchApiKey", "web_search_api_key"}


class AssistService:
    def __init__(
        self,
        provider_client: Optional[ProviderClient] = None,
        translator: Optional[TranslatorClient] = None,
        tool_executor: Optional[ToolExecutor] = None,
        registry: Optional[RequestRegistry] = None,
        cfg=None,
    ):
        self._settings = cfg or settings
        self._provider_client = provider_client or OllamaClient(self._settings)
        self._registry = registry or RequestRegistry()
        self._orchestrator = QuickAnswerOrchestrator(
            self._provider_client,
            tool_executor or default_executor(self._settings),
        )
        self._resolver = TranslationResolver(translator or GoogleTranslateClient(self._settings))

    @property
    def registry(self) -> RequestRegistry:
        return self._registry

    # ---- 快速问答 ----

    async def quick_answer(
        self,
        text: str,
        model: Optional[str] = None,
        enable_thinking: Optional[bool] = None,
    ) -> str:
        model_name = model or self._settings.ollama_model
        think = self._settings.enable_thinking if enable_thinking is None else enable_thinking

        async def _work(token: CancelToken) -> str:
            return await self._orchestrator.run(text, model_name, think)

        return await run_in_slot(self._registry, QUICK_ANSWER, _work, log_name="quick_answer")

    def cancel_quick_answer(self) -> bool:
        return self._cancel(QUICK_ANSWER, "quick_answer")

    # ---- 翻译 ----

    async def translate_text(self, text: str, target_language: Optional[str] = None) -> TranslationResult:
        target = self._settings.translation_second_language if target_language is None else target_language

        async def _work(token: CancelToken) -> TranslationResult:
            return await self._resolver.resolve(text, target)

        return await run_in_slot(self._registry, TRANSLATE, _work, log_name="translate_text")

    def cancel_translate_text(self) -> bool:
        return self._cancel(TRANSLATE, "translate_text")

    # ---- 流式聊天 ----

    async def chat_stream(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        on_token: Callable[[str], None],
        on_done: Callable[[], None],
    ) -> None:
        """把流式响应推送给 on_token；无论结果如何，on_done 恰好调用一次。"""

        done_sent = False

        def _done() -> None:
            nonlocal done_sent
            if not done_sent:
                done_sent = True
                on_done()

        async def _work(token: CancelToken) -> None:
            req = ChatRequest(model=model, messages=list(messages))
            async for event in self._provider_client.chat_stream(req):
                token.raise_if_cancelled()
                if event.content_fragment:
                    on_token(event.content_fragment)
                if event.is_final:
                    _done()
                    return

        try:
            await run_in_slot(self._registry, CHAT_STREAM, _work, log_name="chat_stream")
        finally:
            _done()

    def cancel_chat_stream(self) -> bool:
        return self._cancel(CHAT_STREAM, "chat_stream")

    # ---- 模型 ----

    async def list_models(self) -> List[str]:
        return await self._provider_client.list_models()

    async def resolve_default_model(self) -> str:
        """返回配置的模型；未配置时取第一个可用模型，Ollama 不可用时返回空字符串。"""

        if self._settings.ollama_model:
            return self._settings.ollama_model
        try:
            models = await self.list_models()
        except BusinessError as exc:
            logger.warning("Could not list models", extra={"extra": {"error": exc.message}})
            return ""
        return models[0] if models else ""

    # ---- 设置 ----

    @staticmethod
    def log_settings_update(values: Dict[str, Any]) -> Dict[str, Any]:
        safe_values = dict(values)
        for key in REDACTED_KEYS & safe_values.keys():
            safe_values[key] = "[redacted]"
        logger.info("[settings] Updated values", extra={"extra": {"values": safe_values}})
        return safe_values

    def _cancel(self, slot: str, log_name: str) -> bool:
        generation = self._registry.cancel(slot)
        if generation is None:
            return False
        logger.info(f"[{log_name}][id={generation}] cancel requested")
        return True
