"""State definition for the task execution graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, TypedDict

from agentnamix.domain.conversation import ConversationHistory
from agentnamix.domain.models import GenerateResult
from agentnamix.tools.definitions import ToolCall


class ExecutionState(TypedDict, total=False):
    """State shared across LangGraph nodes for one task."""

    history: ConversationHistory
    system_prompt: str
    model: str
    native_search: bool
    rounds: int
    max_rounds: int
    last_result: Optional[GenerateResult]
    last_text: str
    pending_calls: List[ToolCall]
    widgets: List[str]
    model_text: Optional[str]
    truncated: bool


@dataclass
class TaskOutcome:
    """单个任务的执行结果。

    model_text 是模型可见的最终回答；rendered_widgets 是工具产生的展示片段
    （以及联网搜索的来源列表），只面向用户，不进入对话历史。
    """

    model_text: str
    rendered_widgets: List[str] = field(default_factory=list)
    rounds: int = 0
    truncated: bool = False

    def render(self) -> str:
        return "\n\n".join([self.model_text, *self.rendered_widgets])
