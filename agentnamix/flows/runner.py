"""High-level entry point for executing one task through the tool-call loop."""

from __future__ import annotations

import logging
from typing import List, Optional

from agentnamix.config.settings import settings
from agentnamix.domain.agent import AgentConfiguration, Task
from agentnamix.domain.conversation import AgentStore, ConversationHistory
from agentnamix.domain.events import BrowserActionCallback, ProjectUpdateCallback
from agentnamix.domain.models import InlineData
from agentnamix.flows.graph import build_graph
from agentnamix.flows.state import ExecutionState, TaskOutcome
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.prompts import format_documents, load_prompt
from agentnamix.providers.gateway import ModelGateway
from agentnamix.tasks.trace import TraceRecorder
from agentnamix.tools.executor import ToolExecutor
from agentnamix.tools.handlers.browser import INITIAL_URL
from agentnamix.tools.handlers.ssh import BridgeShell, Shell, create_shell
from agentnamix.tools.registry import ToolContext, build_toolset, tool_guidance


def build_system_prompt(config: AgentConfiguration, store: Optional[AgentStore] = None) -> str:
    prompt = load_prompt("executor_system").format(name=config.name, description=config.description)
    lines = [f"\n- {line}" for line in tool_guidance(config)]
    if config.has_tool("memory_system") and store is not None:
        memories = store.get_high_priority_memories()
        if memories:
            items = "\n".join(f"- [{m.type.upper()}] {m.content}" for m in memories)
            lines.append(f"\n\n[MEMORIA A LARGO PLAZO - DATOS CRÍTICOS]:\n{items}")
    return prompt + "".join(lines)


def build_initial_history(task: Task, context: str, goal: str, config: AgentConfiguration) -> ConversationHistory:
    text = load_prompt("task_user").format(
        goal=goal,
        documents=format_documents(config.documents),
        context=context,
        task=task.description,
        browser=f"URL INICIAL: {INITIAL_URL}" if config.has_tool("browser_interaction") else "",
    )
    images: List[InlineData] = []
    if config.has_tool("image_analyzer"):
        images = [InlineData(mime_type=img.mime_type, data=img.data) for img in config.images]
    history = ConversationHistory()
    history.add_user(text, images)
    return history


def _open_shell(config: AgentConfiguration) -> Optional[Shell]:
    if not config.has_tool("aura_ssh"):
        return None
    shell = create_shell(config.ssh_config)
    if isinstance(shell, BridgeShell) and not shell.connect():
        log_event(logging.WARNING, "ssh bridge unavailable", proxy_url=config.ssh_config.proxy_url)
    return shell


def run_task(
    task: Task,
    context: str,
    goal: str,
    config: AgentConfiguration,
    gateway: ModelGateway,
    *,
    store: Optional[AgentStore] = None,
    on_browser_action: Optional[BrowserActionCallback] = None,
    on_project_update: Optional[ProjectUpdateCallback] = None,
    max_rounds: Optional[int] = None,
    shell: Optional[Shell] = None,
) -> TaskOutcome:
    """Execute one task and return its outcome.

    Args:
        task: 当前任务
        context: 已完成任务的上下文
        goal: 全局目标
        config: 运行开始时拍下的配置快照
        gateway: 模型网关
        store: 长期记忆存储（启用 memory_system 时需要）
        on_browser_action / on_project_update: UI 副作用回调
        max_rounds: 工具调用轮次上限，默认取配置
        shell: 指定 shell 后端，默认按 ssh_config 创建

    Raises:
        ProviderError / RateLimitError 等模型调用错误，由编排层处理。
    """

    rounds_limit = max_rounds or settings.max_tool_rounds
    owns_shell = shell is None
    shell = shell or _open_shell(config)
    context_tools = ToolContext(
        store=store,
        gateway=gateway,
        shell=shell,
        on_browser_action=on_browser_action,
        on_project_update=on_project_update,
    )
    toolset = build_toolset(config, context_tools)
    trace = TraceRecorder(task.id, task.description, config.model) if settings.trace_enabled else None
    graph = build_graph(gateway, toolset, ToolExecutor(toolset), trace)

    state: ExecutionState = {
        "history": build_initial_history(task, context, goal, config),
        "system_prompt": build_system_prompt(config, store),
        "model": config.model,
        "native_search": toolset.native_search,
        "rounds": 0,
        "max_rounds": rounds_limit,
        "last_result": None,
        "last_text": "",
        "pending_calls": [],
        "widgets": [],
        "model_text": None,
        "truncated": False,
    }
    log_event(logging.INFO, "execution.start", task_id=task.id, model=config.model, tools=len(toolset.declarations))
    try:
        result = graph.invoke(state, {"recursion_limit": 2 * rounds_limit + 5})
    except Exception as e:
        if trace:
            trace.finalize("error", str(e))
        raise
    finally:
        if owns_shell and isinstance(shell, BridgeShell):
            shell.close()

    outcome = TaskOutcome(
        model_text=result["model_text"],
        rendered_widgets=list(result["widgets"]),
        rounds=result["rounds"],
        truncated=result["truncated"],
    )
    if trace:
        trace.finalize("truncated" if outcome.truncated else "ok", outcome.model_text, rounds=outcome.rounds, truncated=outcome.truncated)
    log_event(logging.INFO, "execution.end", task_id=task.id, rounds=outcome.rounds, truncated=outcome.truncated)
    return outcome
