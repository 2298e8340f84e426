from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .agent import MemoryRecord, Priority, SavedAgent, MemoryType
from .models import FunctionResponse, InlineData, Part, Turn


@dataclass
class ConversationHistory:
    """单次执行循环独占的多轮对话历史，任务结束即丢弃。"""

    turns: List[Turn] = field(default_factory=list)

    def add_user(self, text: str, images: Sequence[InlineData] = ()) -> Turn:
        parts = [Part.from_text(text)]
        parts.extend(Part(inline_data=img) for img in images)
        turn = Turn(role="user", parts=parts)
        self.turns.append(turn)
        return turn

    def add_model(self, turn: Turn) -> None:
        self.turns.append(turn)

    def add_function_responses(self, responses: Sequence[FunctionResponse]) -> Turn:
        turn = Turn(role="user", parts=[Part(function_response=r) for r in responses])
        self.turns.append(turn)
        return turn

    def last_model_text(self) -> str:
        for turn in reversed(self.turns):
            if turn.role == "model" and turn.text:
                return turn.text
        return ""

    def __len__(self) -> int:
        return len(self.turns)


class AgentStore(Protocol):
    """Agent 预设与长期记忆的持久化接口。"""

    def list_agents(self) -> List[SavedAgent]:
        ...

    def save_agent(self, agent: SavedAgent) -> None:
        ...

    def delete_agent(self, agent_id: str) -> None:
        ...

    def add_memory(self, content: str, type: MemoryType = "note", priority: Priority = "medium") -> MemoryRecord:
        ...

    def search_memories(self, query: str, limit: int = 5) -> List[MemoryRecord]:
        ...

    def get_high_priority_memories(self, limit: int = 10) -> List[MemoryRecord]:
        ...

    def forget_memory(self, memory_id: str) -> bool:
        ...

    def clear_memories(self) -> None:
        ...


def memory_to_dict(record: MemoryRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "content": record.content,
        "type": record.type,
        "priority": record.priority,
        "timestamp": record.timestamp,
    }


def find_memory(records: Sequence[MemoryRecord], memory_id: str) -> Optional[MemoryRecord]:
    for rec in records:
        if rec.id == memory_id:
            return rec
    return None
