"""规划器：一次模型调用把目标拆解为有序步骤列表。"""

import json
import logging
import re
from typing import List

from agentnamix.domain.agent import AgentConfiguration
from agentnamix.domain.exceptions import PlanningError
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.prompts import format_documents, load_prompt
from agentnamix.providers.gateway import ModelGateway


MIN_PLAN_STEPS = 3
MAX_PLAN_STEPS = 6

_FENCED_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def parse_plan(text: str) -> List[str]:
    """解析模型返回的 JSON 字符串数组。

    容忍 ```json 代码块包裹；空白步骤会被剔除，超过 6 步时只保留前 6 步。
    空计划、非法 JSON 或包含非字符串元素时抛出 PlanningError。
    """

    raw = (text or "").strip()
    fenced = _FENCED_RE.search(raw)
    if fenced:
        raw = fenced.group(1)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PlanningError(code="MALFORMED_PLAN", message=f"El plan devuelto no es JSON válido: {e}")
    if not isinstance(data, list):
        raise PlanningError(code="MALFORMED_PLAN", message="El plan devuelto no es una lista de pasos.")
    if any(not isinstance(item, str) for item in data):
        raise PlanningError(code="MALFORMED_PLAN", message="El plan contiene pasos que no son texto.")
    steps = [item.strip() for item in data if item.strip()]
    if not steps:
        raise PlanningError(code="EMPTY_PLAN", message="El planificador no devolvió ningún paso.")
    return steps[:MAX_PLAN_STEPS]


class Planner:
    def __init__(self, gateway: ModelGateway):
        self._gateway = gateway

    def build_prompt(self, goal: str, config: AgentConfiguration) -> str:
        images = (
            f"[ENTRADA VISUAL]: Se han adjuntado {len(config.images)} imágenes para análisis."
            if config.images
            else ""
        )
        return load_prompt("planner").format(
            name=config.name,
            description=config.description,
            tools=", ".join(sorted(config.tools)),
            documents=format_documents(config.documents),
            images=images,
            goal=goal,
        )

    def plan(self, goal: str, config: AgentConfiguration) -> List[str]:
        text = self._gateway.plan_call(config.model, self.build_prompt(goal, config))
        steps = parse_plan(text)
        log_event(logging.INFO, "plan created", steps=len(steps), model=config.model)
        if len(steps) < MIN_PLAN_STEPS:
            log_event(logging.WARNING, "plan shorter than expected", steps=len(steps), minimum=MIN_PLAN_STEPS)
        return steps
