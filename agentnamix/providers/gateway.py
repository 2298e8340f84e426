"""模型网关。

所有模型调用都经过 ModelGateway：
- 把界面别名解析为真实模型 ID。
- 对限流错误做指数退避重试（默认 5 次尝试，等待 4s、8s、16s、32s）。
- 其他错误不重试，直接向上抛出。

同时提供三种调用形态：plan_call（JSON 字符串数组）、converse（带工具声明）、complete（纯文本）。
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from agentnamix.config.settings import settings
from agentnamix.domain.exceptions import RateLimitError
from agentnamix.domain.models import GenerateRequest, GenerateResult, Part, Turn
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.providers.base import ProviderClient
from agentnamix.providers.registry import resolve_model
from agentnamix.tools.definitions import ToolDef


PLAN_RESPONSE_SCHEMA: Dict[str, Any] = {"type": "ARRAY", "items": {"type": "STRING"}}


class ModelGateway:
    def __init__(
        self,
        provider: ProviderClient,
        attempts: Optional[int] = None,
        initial_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._provider = provider
        self._attempts = attempts if attempts is not None else settings.retry_attempts
        self._initial_delay = initial_delay if initial_delay is not None else settings.retry_initial_delay
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return self._provider.name

    def generate(
        self,
        model: str,
        conversation: Sequence[Turn],
        tool_catalog: Optional[List[ToolDef]] = None,
        system_prompt: Optional[str] = None,
        temperature: float = 0.5,
        native_search: bool = False,
        response_mime_type: Optional[str] = None,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> GenerateResult:
        """执行一次生成调用，限流时按指数退避重试。

        Raises:
            RateLimitError: 尝试次数耗尽后抛出最后一次限流错误。
            ProviderError / NetworkError 等: 不重试，立即抛出。
        """

        req = GenerateRequest(
            model=resolve_model(model),
            contents=list(conversation),
            system_instruction=system_prompt,
            tools=tool_catalog or None,
            native_search=native_search,
            temperature=temperature,
            response_mime_type=response_mime_type,
            response_schema=response_schema,
        )
        delay = self._initial_delay
        for attempt in range(1, self._attempts + 1):
            try:
                result = self._provider.generate(req)
            except RateLimitError as e:
                if attempt >= self._attempts:
                    log_event(
                        logging.ERROR,
                        "rate limit retries exhausted",
                        provider=self._provider.name,
                        model=req.model,
                        attempts=attempt,
                    )
                    raise
                log_event(
                    logging.WARNING,
                    "rate limited, retrying",
                    provider=self._provider.name,
                    model=req.model,
                    attempt=attempt,
                    delay=delay,
                    error=e.message,
                )
                self._sleep(delay)
                delay *= 2
                continue
            log_event(
                logging.INFO,
                "model call",
                provider=self._provider.name,
                model=req.model,
                attempt=attempt,
                finish_reason=result.finish_reason,
                prompt_tokens=result.usage.prompt_tokens if result.usage else None,
                completion_tokens=result.usage.completion_tokens if result.usage else None,
            )
            return result
        # attempts < 1 时不会进入循环
        raise RateLimitError(code="RATE_LIMIT", message="no attempts configured")

    # ---- 调用形态 ----

    def plan_call(self, model: str, prompt: str) -> str:
        """约束输出为 JSON 字符串数组的规划调用，返回原始文本。"""

        result = self.generate(
            model,
            [Turn(role="user", parts=[Part.from_text(prompt)])],
            temperature=settings.plan_temperature,
            response_mime_type="application/json",
            response_schema=PLAN_RESPONSE_SCHEMA,
        )
        return result.text

    def converse(
        self,
        model: str,
        history: Sequence[Turn],
        tools: Optional[List[ToolDef]] = None,
        system_prompt: Optional[str] = None,
        native_search: bool = False,
    ) -> GenerateResult:
        return self.generate(
            model,
            history,
            tool_catalog=tools,
            system_prompt=system_prompt,
            temperature=settings.converse_temperature,
            native_search=native_search,
        )

    def complete(
        self,
        model: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.5,
        response_mime_type: Optional[str] = None,
    ) -> str:
        result = self.generate(
            model,
            [Turn(role="user", parts=[Part.from_text(prompt)])],
            system_prompt=system_prompt,
            temperature=temperature,
            response_mime_type=response_mime_type,
        )
        return result.text
