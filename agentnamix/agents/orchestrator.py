"""运行编排器。

持有任务队列、运行状态与日志流，负责：
- start(): 规划目标并填充任务队列。
- tick(): 推进下一个待执行任务（每次最多执行一个）。
- follow_up() / editor_request(): 运行中或结束后追加任务。
- stop() / reset(): 停止推进或清空整个运行。

每次 start()/reset() 都会递增运行纪元(epoch)，在途轮次完成时若纪元已变化，其结果直接丢弃。
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from agentnamix.agents.planner import Planner
from agentnamix.config.settings import settings
from agentnamix.domain.agent import AgentConfiguration, AgentDocument, LogEntry, LogType, RunStatus, Task
from agentnamix.domain.conversation import AgentStore
from agentnamix.domain.events import BrowserActionCallback, ProjectStructure, ProjectUpdateCallback
from agentnamix.domain.exceptions import BusinessError, RunFailure, ValidationError
from agentnamix.flows.runner import run_task
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.providers.gateway import ModelGateway
from agentnamix.tasks.queue import TaskQueue
from agentnamix.tasks.report import build_mission_report
from agentnamix.tools.handlers.architect import assemble_preview


LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "ai": logging.INFO,
    "system": logging.INFO,
    "error": logging.ERROR,
}


@dataclass
class OrchestratorSnapshot:
    status: RunStatus
    goal: str
    tasks: List[Task] = field(default_factory=list)
    logs: List[LogEntry] = field(default_factory=list)
    config: Optional[AgentConfiguration] = None
    project: Optional[ProjectStructure] = None

    @property
    def processing_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == "processing")


class Orchestrator:
    def __init__(
        self,
        gateway: ModelGateway,
        store: Optional[AgentStore] = None,
        planner: Optional[Planner] = None,
        runner: Callable = run_task,
        on_browser_action: Optional[BrowserActionCallback] = None,
        on_project_update: Optional[ProjectUpdateCallback] = None,
        on_log: Optional[Callable[[LogEntry], None]] = None,
        continue_on_task_failure: Optional[bool] = None,
    ):
        self._gateway = gateway
        self._store = store
        self._planner = planner or Planner(gateway)
        self._runner = runner
        self._on_browser_action = on_browser_action
        self._on_project_update = on_project_update
        self._on_log = on_log
        self._continue_on_failure = (
            settings.continue_on_task_failure if continue_on_task_failure is None else continue_on_task_failure
        )
        self._queue = TaskQueue()
        self._logs: List[LogEntry] = []
        self._status = RunStatus.IDLE
        self._goal = ""
        self._config: Optional[AgentConfiguration] = None
        self._project: Optional[ProjectStructure] = None
        self._epoch = 0
        self._last_failure: Optional[RunFailure] = None

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def config(self) -> Optional[AgentConfiguration]:
        return self._config

    @property
    def last_failure(self) -> Optional[RunFailure]:
        """最近一次导致运行失败的任务错误。"""

        return self._last_failure

    # ---- 运行控制 ----

    def start(self, goal: str, config: AgentConfiguration) -> None:
        self._epoch += 1
        epoch = self._epoch
        self._goal = goal
        self._config = config
        self._queue.clear()
        self._logs = []
        self._project = None
        self._status = RunStatus.PLANNING
        self._log(f'Sistema Inicializado: "{config.name}"', "system")
        self._log("Construyendo Plan Táctico...", "ai")
        try:
            steps = self._planner.plan(goal, config)
        except Exception as e:
            if epoch != self._epoch:
                log_event(logging.WARNING, "stale planning failure discarded", epoch=epoch, error=str(e))
                return
            message = e.message if isinstance(e, BusinessError) else str(e)
            self._log(f"Fallo Crítico: {message}", "error")
            self._status = RunStatus.ERROR
            return
        if epoch != self._epoch:
            log_event(logging.WARNING, "stale plan discarded", epoch=epoch)
            return
        tasks = self._queue.seed(steps)
        self._log(f"Plan Autorizado: {len(tasks)} fases.", "success")
        self._status = RunStatus.EXECUTING

    def tick(self) -> bool:
        """推进一个任务，实际执行了任务时返回 True。

        状态不是 EXECUTING 时什么也不做；没有待执行任务时切换到 FINISHED（只触发一次）。
        """

        if self._status != RunStatus.EXECUTING:
            return False
        task = self._queue.next_pending()
        if task is None:
            self._status = RunStatus.FINISHED
            self._log("Misión Cumplida.", "success")
            return False

        epoch = self._epoch
        config = self._config
        self._queue.mark_processing(task)
        self._log(f"Ejecutando: {task.description}", "info")
        try:
            outcome = self._runner(
                replace(task),
                self._prior_context(config),
                self._goal,
                config,
                self._gateway,
                store=self._store,
                on_browser_action=self._on_browser_action,
                on_project_update=lambda project: self._project_updated(project, epoch),
            )
        except Exception as e:
            if epoch != self._epoch:
                log_event(logging.WARNING, "stale task failure discarded", task_id=task.id, error=str(e))
                return True
            self._fail(task, e)
            return True

        if epoch != self._epoch:
            log_event(logging.WARNING, "stale task result discarded", task_id=task.id)
            return True
        self._queue.mark_completed(task, outcome.render(), outcome.truncated)
        if outcome.truncated:
            self._log("Fase Completa (respuesta parcial: límite de rondas alcanzado).", "success")
        else:
            self._log("Fase Completa.", "success")
        return True

    def run(self) -> OrchestratorSnapshot:
        """持续推进直到状态离开 EXECUTING。"""

        while self._status == RunStatus.EXECUTING:
            self.tick()
        return self.snapshot()

    def stop(self) -> None:
        self._status = RunStatus.IDLE
        self._log("Secuencia Abortada.", "system")

    def reset(self) -> None:
        self._epoch += 1
        self._status = RunStatus.IDLE
        self._queue.clear()
        self._logs = []
        self._goal = ""
        self._project = None

    # ---- 追加任务 ----

    def follow_up(self, text: str) -> Task:
        self._require_config()
        task = self._queue.append(text)
        if self._status in (RunStatus.IDLE, RunStatus.FINISHED, RunStatus.ERROR):
            self._status = RunStatus.EXECUTING
        self._log(f'Nueva Directiva de Seguimiento: "{text}"', "system")
        return replace(task)

    def editor_request(self, instruction: str, current_file: Optional[str] = None) -> Task:
        self._require_config()
        location = f" en {current_file}" if current_file else ""
        task = self._queue.insert_after_processing(f"SOLICITUD EDITOR: {instruction}{location}.")
        if self._status == RunStatus.IDLE:
            self._status = RunStatus.EXECUTING
        self._log(f'Solicitud Editor: "{instruction}"', "ai")
        return replace(task)

    def add_document(self, document: AgentDocument) -> AgentConfiguration:
        """追加知识文档，生成新的配置快照（已在执行中的任务不受影响）。"""

        self._config = self._require_config().with_document(document)
        self._log(f'Archivo "{document.name}" agregado.', "success")
        return self._config

    # ---- 查询 ----

    def snapshot(self) -> OrchestratorSnapshot:
        return OrchestratorSnapshot(
            status=self._status,
            goal=self._goal,
            tasks=self._queue.snapshot(),
            logs=list(self._logs),
            config=self._config,
            project=self._project,
        )

    def project_preview(self) -> Optional[str]:
        if self._project is None:
            return None
        return assemble_preview(self._project.files)

    def mission_report(self) -> str:
        return build_mission_report(self._goal, self._require_config(), self._queue.snapshot())

    # ---- 辅助方法 ----

    def _prior_context(self, config: AgentConfiguration) -> str:
        context = self._queue.context()
        if config.has_tool("software_architect") and self._project is not None:
            context += f"\n\n[PROYECTO ACTUAL]: {', '.join(self._project.paths)}"
        return context

    def _project_updated(self, project: ProjectStructure, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self._project = project
        self._log("Proyecto Actualizado.", "success")
        if self._on_project_update:
            self._on_project_update(project)

    def _fail(self, task: Task, error: Exception) -> None:
        message = str(error)
        self._queue.mark_failed(task, message)
        self._log(f"Fallo: {message}", "error")
        self._last_failure = RunFailure(
            code="TASK_FAILED",
            message=message,
            task_id=task.id,
            cause=getattr(error, "code", type(error).__name__),
        )
        log_event(logging.ERROR, "task failed", task_id=task.id, cause=self._last_failure.extra["cause"], error=message)
        if not self._continue_on_failure and self._status == RunStatus.EXECUTING:
            self._status = RunStatus.ERROR

    def _require_config(self) -> AgentConfiguration:
        if self._config is None:
            raise ValidationError(code="NO_ACTIVE_AGENT", message="No hay un agente configurado. Inicia una misión primero.")
        return self._config

    def _log(self, message: str, type: LogType = "info") -> None:
        entry = LogEntry(message=message, type=type)
        self._logs.append(entry)
        log_event(LOG_LEVELS.get(type, logging.INFO), message, log_type=type, epoch=self._epoch)
        if self._on_log:
            self._on_log(entry)
