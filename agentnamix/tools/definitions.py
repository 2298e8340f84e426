"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具列表暴露给 LLM（ToolDef / ToolParam）。
- 在执行循环中保存和执行模型触发的工具调用（ToolCall / ToolResult）。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional


ToolType = Literal[
    "web_search",
    "code_execution",
    "deep_analysis",
    "browser_interaction",
    "web_scrape",
    "google_calendar",
    "google_drive",
    "software_architect",
    "memory_system",
    "image_analyzer",
    "aura_ssh",
    "model_3d",
]


@dataclass
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass
class ToolDef:
    """一个可供 LLM 调用的工具定义。"""

    name: str
    description: str
    params: Dict[str, ToolParam]


@dataclass
class ToolCall:
    """模型发起的一次工具调用请求。"""

    id: Optional[str]
    name: str
    arguments: Dict[str, Any]


@dataclass
class ToolResult:
    """工具执行结果。

    - data: 回传给模型的结构化结果（总是包含 success 字段）。
    - markup: 面向用户的展示片段（Markdown），不进入模型可见的对话。
    """

    call_id: Optional[str]
    name: str
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    markup: Optional[str] = None

    @classmethod
    def failure(cls, call: ToolCall, message: str) -> "ToolResult":
        return cls(
            call_id=call.id,
            name=call.name,
            success=False,
            data={"success": False, "message": message},
        )
