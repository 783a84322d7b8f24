from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from assist_core.config.settings import settings
from assist_core.domain.exceptions import BusinessError
from assist_core.infrastructure.logging.logger import logger
from .definitions import ToolCall, ToolDef, ToolResult
from .web_search import WEB_SEARCH, web_search, web_search_tool_def


ToolFunc = Callable[[Dict[str, Any]], Awaitable[str]]

# 工具失败时写入结果文本的前缀
FAILURE_PREFIXES = {
    WEB_SEARCH: "Search failed",
}


class ToolExecutor:
    """按名称执行工具调用；除取消外从不向调用方抛出异常。"""

    def __init__(self, tools: Dict[str, ToolFunc], tool_defs: Optional[List[ToolDef]] = None):
        self._tools = tools
        self._defs = {d.name: d for d in (tool_defs or [])}

    @property
    def tool_defs(self) -> List[ToolDef]:
        return list(self._defs.values())

    def supports(self, call: ToolCall) -> bool:
        """工具已注册，且其必填字符串参数都非空。"""

        if call.name not in self._tools:
            return False
        tool_def = self._defs.get(call.name)
        if tool_def is None:
            return True
        for name in tool_def.required_params():
            value = call.arguments.get(name)
            if tool_def.params[name].schema.get("type", "string") == "string":
                if not isinstance(value, str) or not value.strip():
                    return False
            elif value is None:
                return False
        return True

    async def execute(self, call: ToolCall) -> ToolResult:
        func = self._tools.get(call.name)
        if not func:
            return ToolResult(tool_name=call.name, output_text="Tool not registered")
        try:
            output = await func(call.arguments)
        except (BusinessError, httpx.HTTPError, httpx.InvalidURL) as exc:
            message = getattr(exc, "message", None) or str(exc)
            prefix = FAILURE_PREFIXES.get(call.name, f"{call.name} failed")
            logger.warning(
                "Tool execution failed",
                extra={"extra": {"tool_name": call.name, "error": message}},
            )
            return ToolResult(tool_name=call.name, output_text=f"{prefix}: {message}")
        return ToolResult(tool_name=call.name, output_text=output)


def _make_web_search_tool(cfg, transport: Optional[httpx.AsyncBaseTransport]) -> ToolFunc:
    async def _run(args: Dict[str, Any]) -> str:
        return await web_search(
            str(args.get("query") or ""),
            api_url=getattr(cfg, "web_search_api_url", ""),
            api_key=getattr(cfg, "web_search_api_key", ""),
            timeout=getattr(cfg, "http_timeout", 30.0),
            transport=transport,
        )

    return _run


def default_tools(cfg=None, transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, ToolFunc]:
    cfg = cfg or settings
    return {
        WEB_SEARCH: _make_web_search_tool(cfg, transport),
    }


def default_tool_defs() -> List[ToolDef]:
    return [web_search_tool_def()]


def default_executor(cfg=None, transport: Optional[httpx.AsyncBaseTransport] = None) -> ToolExecutor:
    return ToolExecutor(default_tools(cfg, transport), default_tool_defs())
