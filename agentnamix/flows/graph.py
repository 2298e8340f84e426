"""LangGraph construction and node implementations for task execution.

Graph: model -> (tools -> model)* -> finalize -> END
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from agentnamix.domain.exceptions import ProviderError
from agentnamix.domain.models import FunctionResponse, GenerateResult
from agentnamix.flows.state import ExecutionState
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.providers.gateway import ModelGateway
from agentnamix.tasks.trace import TraceRecorder
from agentnamix.tools.executor import ToolExecutor
from agentnamix.tools.registry import ToolSet

FALLBACK_ANSWER = "No se pudo generar una respuesta final."
MAX_PREVIEWS = 3


def _summary(text: str) -> str:
    text = (text or "").strip().replace("\n", " ")
    return text[:200]


def model_node(state: ExecutionState, gateway: ModelGateway, toolset: ToolSet, trace: Optional[TraceRecorder]) -> ExecutionState:
    history = state["history"]
    result = gateway.converse(
        state["model"],
        history.turns,
        tools=toolset.declarations,
        system_prompt=state["system_prompt"],
        native_search=state["native_search"],
    )
    turn = result.turn
    if turn is None or not turn.parts:
        raise ProviderError(
            code="EMPTY_RESPONSE",
            message=f"No content from model. FinishReason: {result.finish_reason}",
        )
    history.add_model(turn)
    calls = turn.function_calls
    if turn.text:
        state["last_text"] = turn.text
    state["last_result"] = result
    state["pending_calls"] = calls
    log_event(logging.INFO, "execution.model", round=state["rounds"], tool_calls=len(calls))
    if trace:
        trace.record_llm_step(state["rounds"], has_tool_calls=bool(calls), summary=_summary(turn.text))
    return state


def tools_node(state: ExecutionState, executor: ToolExecutor, trace: Optional[TraceRecorder]) -> ExecutionState:
    responses: List[FunctionResponse] = []
    for call in state["pending_calls"]:
        result = executor.execute(call)
        if result.markup:
            state["widgets"].append(result.markup)
        responses.append(FunctionResponse(name=call.name, response={"result": result.data}, id=call.id))
        if trace:
            trace.record_tool_step(
                state["rounds"],
                tool_name=call.name,
                args=call.arguments,
                success=result.success,
                result_summary=_summary(str(result.data.get("message", ""))),
            )
    # 同一轮的所有调用结果必须放在同一个 user 轮次里回传
    state["history"].add_function_responses(responses)
    state["pending_calls"] = []
    state["rounds"] += 1
    state["truncated"] = state["rounds"] >= state["max_rounds"]
    log_event(logging.INFO, "execution.tools", round=state["rounds"], calls=len(responses))
    return state


def grounding_widget(result: Optional[GenerateResult]) -> Optional[str]:
    """把原生搜索的引用来源渲染为“来源 + 预览截图”段落。"""

    if result is None or not result.grounding_chunks:
        return None
    sections: List[str] = []
    sources = [f"- [{c.title}]({c.uri})" for c in result.grounding_chunks if c.uri and c.title]
    if sources:
        sections.append("---\n### 📚 Fuentes\n" + "\n".join(sources))
    urls = [c.uri for c in result.grounding_chunks if c.uri][:MAX_PREVIEWS]
    if urls:
        previews = [
            f"[![Vista](https://s0.wp.com/mshots/v1/{quote(url, safe='')}?w=600&h=400)]({url})" for url in urls
        ]
        sections.append("---\n### 📸 Capturas\n" + "\n".join(previews))
    return "\n\n".join(sections) or None


def finalize_node(state: ExecutionState) -> ExecutionState:
    if state.get("truncated"):
        text = state.get("last_text") or FALLBACK_ANSWER
        log_event(logging.WARNING, "execution.truncated", rounds=state["rounds"])
    else:
        result = state.get("last_result")
        text = result.text if result else ""
        if state["native_search"]:
            sources = grounding_widget(result)
            if sources:
                state["widgets"].insert(0, sources)
    state["model_text"] = text.strip() or FALLBACK_ANSWER
    return state


def model_router(state: ExecutionState) -> str:
    if state.get("pending_calls"):
        return "tools"
    return "finalize"


def tools_router(state: ExecutionState) -> str:
    if state.get("truncated"):
        return "finalize"
    return "model"


def build_graph(
    gateway: ModelGateway,
    toolset: ToolSet,
    executor: ToolExecutor,
    trace: Optional[TraceRecorder] = None,
) -> CompiledStateGraph:
    graph = StateGraph(ExecutionState)
    graph.add_node("model", lambda s: model_node(s, gateway, toolset, trace))
    graph.add_node("tools", lambda s: tools_node(s, executor, trace))
    graph.add_node("finalize", finalize_node)
    graph.set_entry_point("model")
    graph.add_conditional_edges("model", model_router, {"tools": "tools", "finalize": "finalize"})
    graph.add_conditional_edges("tools", tools_router, {"model": "model", "finalize": "finalize"})
    graph.add_edge("finalize", END)
    return graph.compile()
