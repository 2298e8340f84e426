"""AGENTNAMIX 顶层包。

该包提供自主任务 Agent 的核心实现，
包括配置加载、领域模型、Gemini Provider 适配、工具系统、
LangGraph 工具调用循环、任务编排与持久化存储等能力。
"""

from agentnamix.agents.orchestrator import Orchestrator
from agentnamix.domain.agent import AgentConfiguration, RunStatus

__all__ = ["AgentConfiguration", "Orchestrator", "RunStatus"]
