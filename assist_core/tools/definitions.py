"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具列表暴露给模型（ToolDef / ToolParam）。
- 在编排流程中保存和执行模型触发的工具调用（ToolCall / ToolResult）。
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List


@dataclass(frozen=True)
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass(frozen=True)
class ToolDef:
    """一个可供模型调用的工具定义。"""

    name: str
    description: str
    params: Dict[str, ToolParam]

    def required_params(self) -> List[str]:
        return [name for name, param in self.params.items() if param.required]

    def to_schema(self) -> Dict[str, Any]:
        """转换为 Ollama /api/chat 接受的 function 工具格式。"""

        properties: Dict[str, Any] = {}
        for name, param in self.params.items():
            schema = param.schema or {"type": "string"}
            if param.description:
                schema = {**schema, "description": param.description}
            properties[name] = schema
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "required": self.required_params(),
                    "properties": properties,
                },
            },
        }


@dataclass(frozen=True)
class ToolCall:
    """模型发起的一次工具调用请求。"""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """工具执行结果的封装（文本形式，失败也以文本描述）。"""

    tool_name: str
    output_text: str
