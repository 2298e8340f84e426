import logging

from pydantic import ValidationError as PydanticValidationError

from agentnamix.domain.exceptions import BusinessError
from agentnamix.infrastructure.logging.logger import log_event
from .definitions import ToolCall, ToolResult
from .registry import ToolSet


class ToolExecutor:
    """按名称分发工具调用。

    execute() 从不抛出异常：未知工具、参数校验失败与处理器内部错误
    都会转换为 success=False 的结果，交给模型自行决定重试或换一种做法。
    """

    def __init__(self, toolset: ToolSet):
        self._toolset = toolset

    def execute(self, call: ToolCall) -> ToolResult:
        spec = self._toolset.get(call.name)
        if spec is None:
            log_event(logging.WARNING, "unknown tool", tool=call.name)
            return ToolResult.failure(call, f"Herramienta desconocida: {call.name}")
        try:
            args = spec.args_model.model_validate(call.arguments or {})
        except PydanticValidationError as e:
            log_event(logging.WARNING, "invalid tool arguments", tool=call.name, errors=e.errors(include_url=False))
            return ToolResult.failure(call, f"Argumentos inválidos para {call.name}: {e}")
        try:
            result = spec.fn(args)
        except BusinessError as e:
            log_event(logging.WARNING, "tool failed", tool=call.name, code=e.code, error=e.message)
            return ToolResult.failure(call, e.message)
        except Exception as e:
            log_event(logging.ERROR, "tool crashed", tool=call.name, error=repr(e))
            return ToolResult.failure(call, f"Error interno de la herramienta {call.name}: {e}")
        result.call_id = call.id
        log_event(logging.INFO, "tool executed", tool=call.name, success=result.success)
        return result
