"""统一的对话与结果数据模型。

本模块定义了执行循环与模型网关之间共享的标准数据结构：

- Part: 对话轮次中的一个片段（文本 / 内联图片 / 函数调用 / 函数结果）。
- Turn: 一个对话轮次，role 为 "user" 或 "model"。
- GenerateRequest: 发给底层 LLM Provider 的完整请求。
- GenerateResult: 从 Provider 解析后的统一响应结果。

Provider 适配器（如 GeminiClient）只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List, TYPE_CHECKING

if TYPE_CHECKING:
    # 仅在类型检查时导入，避免运行时循环依赖
    from agentnamix.tools.definitions import ToolCall, ToolDef


Role = Literal["user", "model"]


@dataclass(frozen=True)
class InlineData:
    """内联二进制数据（目前只用于图片），data 为不带前缀的 base64。"""

    mime_type: str
    data: str


@dataclass(frozen=True)
class FunctionResponse:
    """回传给模型的一次函数调用结果。"""

    name: str
    response: Dict[str, Any]
    id: Optional[str] = None


@dataclass
class Part:
    """对话片段，前四个字段中只应设置一个。

    thought_signature 是 Provider 附带的不透明签名，回传历史时必须原样带上。
    """

    text: Optional[str] = None
    inline_data: Optional[InlineData] = None
    function_call: Optional["ToolCall"] = None
    function_response: Optional[FunctionResponse] = None
    thought_signature: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)


@dataclass
class Turn:
    """一个对话轮次。

    - role: "user"（用户输入或函数结果）或 "model"（模型回复）。
    - parts: 片段列表，模型一次回复中可能同时包含文本与多个函数调用。
    """

    role: Role
    parts: List[Part] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if p.text)

    @property
    def function_calls(self) -> List["ToolCall"]:
        return [p.function_call for p in self.parts if p.function_call is not None]


@dataclass
class GenerateRequest:
    """一次完整的生成请求。

    model 已是 Provider 的真实模型 ID（别名解析在网关完成）。
    response_mime_type / response_schema 用于约束输出为 JSON（规划调用）。
    """

    model: str
    contents: List[Turn]
    system_instruction: Optional[str] = None
    tools: Optional[List["ToolDef"]] = None
    native_search: bool = False
    temperature: float = 0.5
    response_mime_type: Optional[str] = None
    response_schema: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class GroundingChunk:
    """原生联网搜索返回的一条引用来源。"""

    uri: Optional[str]
    title: Optional[str]


@dataclass
class Usage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class GenerateResult:
    """一次生成调用的最终结果。

    - model: 实际调用的模型 ID。
    - turn: 第一个候选的内容；Provider 未返回内容时为 None。
    - finish_reason: 候选的结束原因（STOP / SAFETY / MAX_TOKENS ...）。
    - grounding_chunks: 原生搜索的引用来源。
    - raw: 原始响应 JSON，用于调试或日志记录。
    """

    model: str
    turn: Optional[Turn]
    finish_reason: Optional[str] = None
    grounding_chunks: List[GroundingChunk] = field(default_factory=list)
    usage: Optional[Usage] = None
    raw: Optional[dict] = None

    @property
    def text(self) -> str:
        return self.turn.text if self.turn else ""
