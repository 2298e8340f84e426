"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
优先级：构造参数 > 环境变量 > .env > config.yaml > 默认值。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("AGENT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """运行时配置（使用 Pydantic）。"""

    # ---- 模型网关 ----
    gemini_api_key: Optional[str] = Field(default=None, description="Gemini API 密钥")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API 基础URL",
    )
    default_model: str = Field(
        default="gemini-2.5-flash",
        description="界面展示的模型别名，由 registry 映射为真实模型",
    )
    http_timeout: float = Field(default=60.0, ge=1.0, description="模型调用 HTTP 超时时间（秒）")
    retry_attempts: int = Field(default=5, ge=1, le=10, description="限流时的最大尝试次数（含首次）")
    retry_initial_delay: float = Field(default=4.0, ge=0.0, description="首次退避等待秒数，之后每次翻倍")
    plan_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    converse_temperature: float = Field(default=0.5, ge=0.0, le=2.0)

    # ---- 执行循环 ----
    max_tool_rounds: int = Field(
        default=6,
        ge=1,
        le=20,
        description="单个任务内工具调用最大轮数",
    )
    continue_on_task_failure: bool = Field(
        default=False,
        description="任务失败后是否继续执行下一个任务（默认整个运行进入 ERROR）",
    )

    # ---- 工具 ----
    page_proxy_url: str = Field(default="https://r.jina.ai/", description="网页文本提取代理")
    page_fetch_timeout: float = Field(default=15.0, gt=0.0, description="单次网页抓取超时（秒）")
    ssh_poll_attempts: int = Field(default=20, ge=1, description="SSH 桥接输出轮询次数")
    ssh_poll_interval: float = Field(default=0.5, gt=0.0, description="SSH 桥接轮询间隔（秒）")

    # ---- 存储与日志 ----
    storage_root: str = Field(default=".storage", description="存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")
    trace_enabled: bool = Field(default=False, description="是否为每个任务写入 trace 文件")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("gemini_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
