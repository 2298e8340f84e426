"""Agent 运行相关的领域模型。

- AgentConfiguration: 运行开始时拍下的只读配置快照。
- Task: 计划中的一个步骤及其执行状态。
- RunStatus: 整个运行的粗粒度状态。
- LogEntry: 面向 UI 的运行日志条目。
- MemoryRecord / SavedAgent: 本地持久化存储中的记录。
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Literal, Optional, Tuple
from uuid import uuid4
import time

from agentnamix.tools.definitions import ToolType


TaskStatus = Literal["pending", "processing", "completed", "failed"]
LogType = Literal["info", "success", "error", "ai", "system"]
MemoryType = Literal["fact", "preference", "summary", "note"]
Priority = Literal["low", "medium", "high"]


class RunStatus(str, Enum):
    IDLE = "IDLE"
    PLANNING = "PLANNING"
    EXECUTING = "EXECUTING"
    FINISHED = "FINISHED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class AgentDocument:
    """用户上传并已解析为文本的知识文档。"""

    name: str
    content: str


@dataclass(frozen=True)
class AgentImage:
    name: str
    mime_type: str
    data: str  # 不带 data: 前缀的 base64


@dataclass(frozen=True)
class SshConfiguration:
    """AURA SSH 配置。

    mode="simulated" 时使用内置虚拟文件系统；
    mode="real" 时通过 proxy_url 指向的 WebSocket 桥接执行真实命令。
    """

    mode: Literal["simulated", "real"] = "simulated"
    host: str = ""
    port: str = "22"
    username: str = ""
    password: Optional[str] = None
    private_key: Optional[str] = None
    proxy_url: Optional[str] = None


@dataclass(frozen=True)
class AgentConfiguration:
    """Agent 配置快照，运行期间只读。"""

    name: str
    description: str
    tools: FrozenSet[ToolType] = frozenset()
    model: str = "gemini-2.5-flash"
    documents: Tuple[AgentDocument, ...] = ()
    images: Tuple[AgentImage, ...] = ()
    ssh_config: Optional[SshConfiguration] = None

    def __post_init__(self) -> None:
        # 允许调用方传入 list/set，统一冻结为不可变类型
        object.__setattr__(self, "tools", frozenset(self.tools))
        object.__setattr__(self, "documents", tuple(self.documents))
        object.__setattr__(self, "images", tuple(self.images))

    def has_tool(self, tool: ToolType) -> bool:
        return tool in self.tools

    def with_document(self, document: AgentDocument) -> "AgentConfiguration":
        return replace(self, documents=self.documents + (document,))


@dataclass
class Task:
    id: str
    description: str
    status: TaskStatus = "pending"
    result: Optional[str] = None
    truncated: bool = False


@dataclass(frozen=True)
class LogEntry:
    message: str
    type: LogType = "info"
    id: str = field(default_factory=lambda: uuid4().hex[:8])
    timestamp: float = field(default_factory=time.time)


@dataclass
class MemoryRecord:
    id: str
    content: str
    type: MemoryType
    priority: Priority
    timestamp: float


@dataclass
class SavedAgent:
    """已保存的 Agent 预设。"""

    id: str
    config: AgentConfiguration
    is_default: bool = False
