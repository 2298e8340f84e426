"""Task-level utilities (queue, mission report, execution trace)."""

from .queue import TaskQueue
from .report import build_mission_report
from .trace import TraceRecorder

__all__ = ["TaskQueue", "TraceRecorder", "build_mission_report"]
