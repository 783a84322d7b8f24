"""web_search 工具：调用外部搜索 API，原样返回响应文本（通常为 JSON）。"""

from typing import Optional
from urllib.parse import quote

import httpx

from assist_core.domain.exceptions import ApiError, ConfigurationError, NetworkError
from assist_core.infrastructure.logging.logger import logger
from assist_core.tools.definitions import ToolDef, ToolParam


WEB_SEARCH = "web_search"


async def web_search(
    query: str,
    api_url: Optional[str],
    api_key: Optional[str],
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    api_url = (api_url or "").strip()
    api_key = (api_key or "").strip()
    logger.info(
        "web_search invoked",
        extra={"extra": {"url_len": len(api_url), "has_key": bool(api_key)}},
    )
    if not api_url:
        raise ConfigurationError(code="CONFIG_ERROR", message="Search API URL not configured in Options")
    if not api_key:
        raise ConfigurationError(code="CONFIG_ERROR", message="Search API key not configured in Options")

    try:
        async with httpx.AsyncClient(timeout=timeout, trust_env=False, transport=transport) as client:
            resp = await client.post(
                api_url,
                params={"format": "json"},
                content=f"q={quote(query, safe='')}",
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
            )
    except (httpx.RequestError, httpx.InvalidURL) as e:
        raise NetworkError(code="NETWORK_ERROR", message=f"Search request failed: {e}")
    if not resp.is_success:
        raise ApiError(
            code="API_ERROR",
            message=f"Search API error: {resp.status_code}",
            http_status=resp.status_code,
        )
    return resp.text


def web_search_tool_def() -> ToolDef:
    return ToolDef(
        name=WEB_SEARCH,
        description=(
            "Search the internet for current information. Use this when you need to find "
            "up-to-date information or facts you don't know."
        ),
        params={
            "query": ToolParam(
                name="query",
                description="The search query to look up on the internet",
                required=True,
                schema={"type": "string"},
            )
        },
    )
