"""请求编排层：生命周期登记表、快速问答编排与翻译方向判定。"""

from assist_core.flows.lifecycle import CancelToken, RequestRegistry, run_in_slot
from assist_core.flows.orchestrator import QuickAnswerOrchestrator
from assist_core.flows.translation import TranslationResolver

__all__ = [
    "CancelToken",
    "QuickAnswerOrchestrator",
    "RequestRegistry",
    "TranslationResolver",
    "run_in_slot",
]
