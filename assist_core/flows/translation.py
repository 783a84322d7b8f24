"""翻译方向判定。

- 未指定目标语言或目标为 en：翻译为英文；若源语言已是英文则报 SourceIsEnglishError。
- 指定了第二语言：先翻译为该语言；若检测到源语言是英文，直接返回该结果，
  否则改为翻译成英文返回。

每次方向调用都是独立的外部请求，遇到的第一个传输/解析错误直接抛出。
"""

from typing import Optional

from assist_core.domain.exceptions import SourceIsEnglishError, ValidationError
from assist_core.domain.models import TranslationResult
from assist_core.infrastructure.logging.logger import logger
from assist_core.providers.base import TranslatorClient


ENGLISH = "en"


class TranslationResolver:
    def __init__(self, translator: TranslatorClient):
        self._translator = translator

    async def resolve(self, text: str, target_language: Optional[str] = None) -> TranslationResult:
        if not text.strip():
            raise ValidationError(code="EMPTY_TEXT", message="Empty text")

        target = (target_language or "").strip()
        if not target or target == ENGLISH:
            result = await self._translator.translate(text, ENGLISH)
            if result.detected_language == ENGLISH:
                raise SourceIsEnglishError(code="SOURCE_IS_ENGLISH", message="Source is English")
            return result

        result = await self._translator.translate(text, target)
        if result.detected_language == ENGLISH:
            return result
        logger.debug(
            "Source is not English, translating to English instead",
            extra={"extra": {"detected_language": result.detected_language, "target": target}},
        )
        return await self._translator.translate(text, ENGLISH)
