"""Provider 端点配置。

本模块集中描述各外部服务的固定路径，上层只依赖逻辑名称，
基础地址由 settings 提供，便于切换到远程 Ollama 或代理。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    endpoints: Dict[str, str]

    def url(self, endpoint: str, base_url: str = "") -> str:
        base = (base_url or self.base_url).rstrip("/")
        return f"{base}{self.endpoints[endpoint]}"


OLLAMA_CONFIG = ProviderConfig(
    name="ollama",
    base_url="http://127.0.0.1:11434",
    endpoints={
        "chat": "/api/chat",
        "tags": "/api/tags",
    },
)

GOOGLE_TRANSLATE_CONFIG = ProviderConfig(
    name="google-translate",
    base_url="https://translate.google.com/_/TranslateWebserverUi/data/batchexecute",
    endpoints={
        "batch": "",
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "ollama": OLLAMA_CONFIG,
    "google-translate": GOOGLE_TRANSLATE_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
