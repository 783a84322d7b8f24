"""外部服务集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护各服务的端点配置 (registry)。
- 提供具体实现 (ollama_client、translate_client)。
"""

from typing import Optional

from assist_core.config.settings import settings
from assist_core.providers.base import ProviderClient, TranslatorClient
from assist_core.providers.ollama_client import OllamaClient
from assist_core.providers.translate_client import GoogleTranslateClient


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建对话 Provider 实例，目前仅支持 ollama。"""

    provider_name = (name or "ollama").lower()
    if provider_name != "ollama":
        raise KeyError(f"Unknown provider: {name!r}")
    return OllamaClient(settings)


def create_translator(name: Optional[str] = None) -> TranslatorClient:
    translator_name = (name or "google-translate").lower()
    if translator_name != "google-translate":
        raise KeyError(f"Unknown translator: {name!r}")
    return GoogleTranslateClient(settings)

