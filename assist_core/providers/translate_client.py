"""Google 翻译 batchexecute 适配器。

请求:
- URL: {translate_base_url}?rpcids=MkEWBc&...&rt=c
- Body: f.req=<urlencoded JSON>，内层为 [[text, "auto", target, true], [null]]。

响应以 6 个字符的防 XSSI 前缀开头，其后逐行为 JSON 数组；取第一个
"wrb.fr" 信封，其第 3 个元素是再次编码的 JSON 字符串（下称 payload）。

只认以下两条固定路径，任何偏离都视为解析错误：
- 译文片段: payload[1][0][0][5][i][0]
- 检测到的源语言: payload[2]
"""

import json
import random
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from assist_core.config.settings import settings
from assist_core.domain.exceptions import ApiError, DecodeError, NetworkError
from assist_core.domain.models import TranslationResult
from assist_core.providers.registry import GOOGLE_TRANSLATE_CONFIG


RPC_ID = "MkEWBc"
XSSI_PREFIX_LEN = 6


class GoogleTranslateClient:
    name = "google-translate"

    def __init__(self, cfg=settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = cfg
        self._transport = transport

    async def translate(self, text: str, target_language: str) -> TranslationResult:
        target = target_language.strip()
        base = getattr(self._settings, "translate_base_url", "") or GOOGLE_TRANSLATE_CONFIG.base_url
        params = {
            "rpcids": RPC_ID,
            "source-path": "/",
            "f.sid": "",
            "bl": "",
            "hl": "en-US",
            "soc-app": "1",
            "soc-platform": "1",
            "soc-device": "1",
            "_reqid": str(random.randint(1000, 9999)),
            "rt": "c",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout,
                trust_env=False,
                transport=self._transport,
            ) as client:
                resp = await client.post(
                    base,
                    params=params,
                    content=self.build_body(text, target),
                    headers={"Content-Type": "application/x-www-form-urlencoded;charset=UTF-8"},
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=f"Request failed: {e}")
        if not resp.is_success:
            raise ApiError(code="API_ERROR", message=f"HTTP error: {resp.status_code}", http_status=resp.status_code)
        return self.parse_response(resp.text)

    @staticmethod
    def build_body(text: str, target_language: str) -> str:
        inner = json.dumps([[text, "auto", target_language, True], [None]], ensure_ascii=False)
        freq = json.dumps([[[RPC_ID, inner, None, "0"]]], ensure_ascii=False)
        return f"f.req={quote(freq, safe='')}&"

    @classmethod
    def parse_response(cls, response_text: str) -> TranslationResult:
        if len(response_text) <= XSSI_PREFIX_LEN:
            raise DecodeError(code="DECODE_ERROR", message="Invalid response format")

        for line in response_text[XSSI_PREFIX_LEN:].splitlines():
            if not line.startswith("[") or '"e"' in line:
                continue
            try:
                outer = json.loads(line)
            except json.JSONDecodeError as e:
                raise DecodeError(code="DECODE_ERROR", message=f"Failed to parse response JSON: {e}")
            payload_str = cls._find_envelope(outer)
            if payload_str is None:
                continue
            try:
                payload = json.loads(payload_str)
            except json.JSONDecodeError as e:
                raise DecodeError(code="DECODE_ERROR", message=f"Failed to parse translation data: {e}")
            return cls._extract(payload)

        raise DecodeError(code="DECODE_ERROR", message="Could not parse translation from response")

    @staticmethod
    def _find_envelope(outer: Any) -> Optional[str]:
        if not isinstance(outer, list):
            return None
        for item in outer:
            if isinstance(item, list) and len(item) >= 3 and item[0] == "wrb.fr" and isinstance(item[2], str):
                return item[2]
        return None

    @staticmethod
    def _extract(payload: Any) -> TranslationResult:
        try:
            parts = payload[1][0][0][5]
            detected = payload[2]
        except (IndexError, KeyError, TypeError):
            raise DecodeError(code="DECODE_ERROR", message="Unexpected translation payload layout")
        if not isinstance(parts, list) or not isinstance(detected, str):
            raise DecodeError(code="DECODE_ERROR", message="Unexpected translation payload layout")

        segments: List[str] = []
        for part in parts:
            if isinstance(part, list) and part and isinstance(part[0], str):
                segments.append(part[0])
        return TranslationResult(text="".join(segments), detected_language=detected)
