"""Provider 与模型配置。

本模块将“界面模型别名”与“具体厂商模型名”解耦：

- alias：界面上展示给用户的品牌名称，例如 "gpt-5mini"。
- provider_model：Gemini 实际提供的模型 ID，例如 "gemini-2.5-flash"。

所有别名最终都路由到同一个真实后端，未知别名回退到默认模型。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ModelConfig:
    """单个模型别名的配置。"""

    alias: str
    provider_model: str
    max_output_tokens: int = 8192


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    default_model: str
    models: Dict[str, ModelConfig]


GEMINI_CONFIG = ProviderConfig(
    name="gemini",
    base_url="https://generativelanguage.googleapis.com/v1beta",
    default_model="gemini-2.5-flash",
    models={
        "gpt-5mini": ModelConfig(alias="gpt-5mini", provider_model="gemini-2.5-flash"),
        "glm-4-6": ModelConfig(alias="glm-4-6", provider_model="gemini-3-pro-preview"),
        "gemini-3-pro": ModelConfig(alias="gemini-3-pro", provider_model="gemini-3-pro-preview"),
        "gemini-2.5-flash": ModelConfig(alias="gemini-2.5-flash", provider_model="gemini-2.5-flash"),
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "gemini": GEMINI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def resolve_model(alias: str, provider: str = "gemini") -> str:
    """把界面别名解析为真实模型 ID，未知别名回退到默认模型。"""

    cfg = get_provider_config(provider)
    model_cfg = cfg.models.get((alias or "").strip())
    if model_cfg is None:
        return cfg.default_model
    return model_cfg.provider_model
