"""辅助助手：Agent 描述优化与使用帮助问答。

两者都是单次文本调用，失败时不影响主流程。
"""

import logging

from agentnamix.domain.exceptions import BusinessError
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.prompts import load_prompt
from agentnamix.providers.gateway import ModelGateway


ASSISTANT_MODEL = "gemini-2.5-flash"
HELP_FALLBACK = "Lo siento, hubo un error de comunicación."


def enhance_agent_description(gateway: ModelGateway, description: str) -> str:
    """改写 Agent 的系统描述；调用失败或返回为空时原样返回输入。"""

    prompt = load_prompt("enhance_description").format(description=description)
    try:
        text = gateway.complete(ASSISTANT_MODEL, prompt, temperature=0.7)
    except BusinessError as e:
        log_event(logging.WARNING, "enhance description failed", code=e.code, error=e.message)
        return description
    return text.strip() or description


def query_help_assistant(gateway: ModelGateway, question: str) -> str:
    try:
        text = gateway.complete(
            ASSISTANT_MODEL,
            question,
            system_prompt=load_prompt("help_assistant"),
            temperature=0.3,
        )
    except BusinessError as e:
        log_event(logging.WARNING, "help assistant failed", code=e.code, error=e.message)
        return f"Error del sistema: {e.message}"
    return text or HELP_FALLBACK
