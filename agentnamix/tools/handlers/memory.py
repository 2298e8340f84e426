"""长期记忆工具：STORE / RETRIEVE / FORGET。"""

from typing import List, Optional

from agentnamix.domain.agent import MemoryRecord
from agentnamix.domain.conversation import AgentStore, memory_to_dict
from agentnamix.tools.definitions import ToolResult
from agentnamix.tools.schemas import MemoryActionArgs


def _result(success: bool, data: dict, markup: Optional[str] = None) -> ToolResult:
    return ToolResult(call_id=None, name="memory_system", success=success, data={"success": success, **data}, markup=markup)


def _retrieve_markup(records: List[MemoryRecord]) -> str:
    header = f"🔍 **Recuperación de Memoria** ({len(records)} resultados)"
    if not records:
        return f"{header}\n\n_No se encontraron recuerdos coincidentes._"
    items = []
    for m in records:
        star = " ★ IMPORTANTE" if m.priority == "high" else ""
        items.append(f"- [{m.type.upper()}]{star} {m.content}")
    return header + "\n\n" + "\n".join(items)


class MemoryTool:
    def __init__(self, store: AgentStore):
        self._store = store

    def __call__(self, args: MemoryActionArgs) -> ToolResult:
        if args.action == "STORE":
            if not args.content:
                return _result(False, {"message": "Contenido requerido para guardar"})
            record = self._store.add_memory(args.content, "fact", args.priority or "medium")
            markup = f"🧠 **Memoria Guardada** `[{record.priority.upper()}]`\n\n> \"{record.content}\""
            return _result(True, {"message": f"Memoria guardada con ID {record.id}"}, markup)

        if args.action == "RETRIEVE":
            records = self._store.search_memories(args.query or "")
            return _result(
                True,
                {"count": len(records), "results": [memory_to_dict(m) for m in records]},
                _retrieve_markup(records),
            )

        if not args.memory_id:
            return _result(False, {"message": "ID requerido para borrar"})
        if not self._store.forget_memory(args.memory_id):
            return _result(False, {"message": f"No existe un recuerdo con ID {args.memory_id}"})
        return _result(True, {"message": "Memoria eliminada"})
