"""有序任务队列。

任务只追加或插入，从不删除；状态变更由编排器通过 mark_* 方法完成。
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional
from uuid import uuid4

from agentnamix.domain.agent import Task


class TaskQueue:
    def __init__(self) -> None:
        self._tasks: List[Task] = []

    def __len__(self) -> int:
        return len(self._tasks)

    def seed(self, steps: Iterable[str]) -> List[Task]:
        """用规划结果替换整个队列，任务 ID 为 task-<序号>。"""

        self._tasks = [Task(id=f"task-{index}", description=step) for index, step in enumerate(steps)]
        return self.snapshot()

    def clear(self) -> None:
        self._tasks = []

    def append(self, description: str) -> Task:
        task = Task(id=f"followup-{uuid4().hex[:12]}", description=description)
        self._tasks.append(task)
        return task

    def insert_after_processing(self, description: str) -> Task:
        """插入到正在执行的任务之后；没有正在执行的任务时插入队首。"""

        task = Task(id=f"edit-{uuid4().hex[:12]}", description=description)
        active = self.processing()
        index = self._tasks.index(active) + 1 if active is not None else 0
        self._tasks.insert(index, task)
        return task

    def get(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def next_pending(self) -> Optional[Task]:
        for task in self._tasks:
            if task.status == "pending":
                return task
        return None

    def processing(self) -> Optional[Task]:
        for task in self._tasks:
            if task.status == "processing":
                return task
        return None

    def completed(self) -> List[Task]:
        return [t for t in self._tasks if t.status == "completed" and t.result]

    def mark_processing(self, task: Task) -> None:
        task.status = "processing"

    def mark_completed(self, task: Task, result: str, truncated: bool = False) -> None:
        task.status = "completed"
        task.result = result
        task.truncated = truncated

    def mark_failed(self, task: Task, message: str) -> None:
        task.status = "failed"
        task.result = message

    def context(self) -> str:
        """已完成任务的上下文，供下一个任务参考。"""

        return "\n\n".join(f"Tarea: {t.description}\nResultado: {t.result}" for t in self.completed())

    def snapshot(self) -> List[Task]:
        return [replace(t) for t in self._tasks]
