"""对外 API 服务模块。

提供简化的函数接口供上层应用（UI / CLI）调用，内部持有单例的
存储、模型网关与编排器。
"""

from typing import Optional, Dict, Any

from agentnamix.agents.assistants import enhance_agent_description, query_help_assistant
from agentnamix.agents.orchestrator import Orchestrator, OrchestratorSnapshot
from agentnamix.config.settings import settings
from agentnamix.domain.agent import AgentConfiguration, AgentDocument, SavedAgent
from agentnamix.domain.conversation import AgentStore
from agentnamix.infrastructure.logging.logger import logger
from agentnamix.infrastructure.storage.json_store import JsonAgentStore
from agentnamix.providers import create_gateway
from agentnamix.providers.gateway import ModelGateway


_store: Optional[AgentStore] = None
_gateway: Optional[ModelGateway] = None
_orchestrator: Optional[Orchestrator] = None


def get_store() -> AgentStore:
    global _store
    if _store is None:
        _store = JsonAgentStore(root=settings.storage_root)
    return _store


def get_gateway() -> ModelGateway:
    global _gateway
    if _gateway is None:
        _gateway = create_gateway()
    return _gateway


def get_orchestrator() -> Orchestrator:
    """获取默认的编排器实例（单例）。"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator(gateway=get_gateway(), store=get_store())
    return _orchestrator


def snapshot_to_dict(snap: OrchestratorSnapshot) -> Dict[str, Any]:
    return {
        "status": snap.status.value,
        "goal": snap.goal,
        "agent": snap.config.name if snap.config else None,
        "tasks": [
            {
                "id": t.id,
                "description": t.description,
                "status": t.status,
                "result": t.result,
                "truncated": t.truncated,
            }
            for t in snap.tasks
        ],
        "logs": [
            {"id": entry.id, "type": entry.type, "message": entry.message, "timestamp": entry.timestamp}
            for entry in snap.logs
        ],
        "project": snap.project.paths if snap.project else None,
    }


def run_mission(goal: str, config: AgentConfiguration) -> Dict[str, Any]:
    """规划并执行一个目标，直到运行结束。

    Args:
        goal: 用户目标
        config: Agent 配置快照

    Returns:
        运行快照字典（状态、任务列表、日志）
    """
    orchestrator = get_orchestrator()
    try:
        orchestrator.start(goal, config)
        return snapshot_to_dict(orchestrator.run())
    except Exception as e:
        logger.error(f"Mission failed: {e}", extra={"extra": {"goal": goal, "error": str(e)}})
        raise


def follow_up(text: str) -> Dict[str, Any]:
    orchestrator = get_orchestrator()
    orchestrator.follow_up(text)
    return snapshot_to_dict(orchestrator.run())


def editor_request(instruction: str, current_file: Optional[str] = None) -> Dict[str, Any]:
    orchestrator = get_orchestrator()
    orchestrator.editor_request(instruction, current_file)
    return snapshot_to_dict(orchestrator.run())


def add_document(name: str, content: str) -> None:
    get_orchestrator().add_document(AgentDocument(name=name, content=content))


def stop_mission() -> Dict[str, Any]:
    orchestrator = get_orchestrator()
    orchestrator.stop()
    return snapshot_to_dict(orchestrator.snapshot())


def reset_mission() -> None:
    get_orchestrator().reset()


def get_state() -> Dict[str, Any]:
    return snapshot_to_dict(get_orchestrator().snapshot())


def export_report() -> str:
    return get_orchestrator().mission_report()


def project_preview() -> Optional[str]:
    return get_orchestrator().project_preview()


def enhance_description(text: str) -> str:
    return enhance_agent_description(get_gateway(), text)


def ask_help(question: str) -> str:
    return query_help_assistant(get_gateway(), question)


def list_agents() -> list[SavedAgent]:
    return get_store().list_agents()


def save_agent(agent: SavedAgent) -> None:
    get_store().save_agent(agent)


def delete_agent(agent_id: str) -> None:
    get_store().delete_agent(agent_id)
