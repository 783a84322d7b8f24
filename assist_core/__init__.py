"""Assist Core 顶层包。

该包提供桌面助手的请求核心：本地 Ollama 对话、带 web_search 工具的
快速问答、Google 翻译方向判定，以及按操作类型的单飞请求管理与取消。
"""

from assist_core.api.service import AssistService
from assist_core.flows.lifecycle import RequestRegistry

__all__ = ["AssistService", "RequestRegistry"]
