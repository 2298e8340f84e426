"""任务报告：把已完成任务导出为一份 Markdown 文档。"""

from datetime import datetime
from typing import Iterable, Optional

from agentnamix.domain.agent import AgentConfiguration, Task
from agentnamix.domain.exceptions import ValidationError


def build_mission_report(
    goal: str,
    config: AgentConfiguration,
    tasks: Iterable[Task],
    now: Optional[datetime] = None,
) -> str:
    completed = [t for t in tasks if t.status == "completed" and t.result]
    if not completed:
        raise ValidationError(code="NO_COMPLETED_TASKS", message="No hay tareas completadas para exportar.")

    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M")
    lines = [
        "# REPORTE DE MISIÓN: AGENTNAMIX",
        "",
        f"**Agente:** {config.name} ({config.model})  ",
        f"**Objetivo:** {goal}  ",
        f"**Fecha:** {stamp}",
        "",
    ]
    for index, task in enumerate(completed, start=1):
        header = f"## FASE {index}: {task.description}"
        if task.truncated:
            header += " _(respuesta parcial)_"
        lines.extend([header, "", task.result, ""])
    lines.append("---")
    lines.append("_Generado por AGENTNAMIX Autonomous System_")
    return "\n".join(lines)
