"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护模型别名配置 (registry)。
- 提供 Gemini 的具体实现 (gemini_client)。
- 提供带限流重试的统一入口 (gateway)。
"""

from typing import Optional

from agentnamix.config.settings import settings
from agentnamix.providers.base import ProviderClient
from agentnamix.providers.gateway import ModelGateway
from agentnamix.providers.gemini_client import GeminiClient


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，目前只有 gemini。"""

    provider_name = (name or "gemini").lower()
    if provider_name != "gemini":
        raise KeyError(f"Unknown provider: {name!r}")
    return GeminiClient(settings)


def create_gateway(provider: Optional[ProviderClient] = None) -> ModelGateway:
    return ModelGateway(provider or create_provider())
