"""任务 trace 记录器。"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from agentnamix.config.settings import settings


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class TraceRecorder:
    """把单个任务的执行轮次、工具调用与最终状态写入 JSON 文件，便于审计。"""

    def __init__(
        self,
        task_id: str,
        task_description: str,
        model: str,
        root: Optional[Union[str, Path]] = None,
        trace_id: Optional[str] = None,
    ):
        self.trace_id = trace_id or f"{task_id}-{uuid4().hex[:8]}"
        traces_dir = Path(root or settings.storage_root) / "traces"
        traces_dir.mkdir(parents=True, exist_ok=True)
        self.path = traces_dir / f"{self.trace_id}.json"
        self.data: Dict[str, Any] = {
            "trace_id": self.trace_id,
            "task_id": task_id,
            "task": task_description,
            "model": model,
            "started_at": _utcnow(),
            "finished_at": None,
            "final_status": None,
            "final_reply_preview": None,
            "rounds": 0,
            "truncated": False,
            "steps": [],
        }
        self._flush()

    def _flush(self) -> None:
        self.path.write_text(json.dumps(self.data, ensure_ascii=False, indent=2), encoding="utf-8")

    def record_llm_step(self, step: int, *, has_tool_calls: bool, summary: str) -> None:
        self.data["steps"].append(
            {
                "type": "llm",
                "step": step,
                "timestamp": _utcnow(),
                "has_tool_calls": has_tool_calls,
                "response_summary": summary,
            }
        )
        self._flush()

    def record_tool_step(
        self,
        step: int,
        *,
        tool_name: str,
        args: Dict[str, Any],
        success: bool,
        result_summary: Optional[str] = None,
    ) -> None:
        self.data["steps"].append(
            {
                "type": "tool",
                "step": step,
                "timestamp": _utcnow(),
                "tool_name": tool_name,
                "args": _trim_args(args),
                "success": success,
                "result_summary": result_summary,
            }
        )
        self._flush()

    def finalize(self, status: str, final_reply: str, *, rounds: int = 0, truncated: bool = False) -> None:
        self.data["finished_at"] = _utcnow()
        self.data["final_status"] = status
        self.data["final_reply_preview"] = (final_reply or "")[:400]
        self.data["rounds"] = rounds
        self.data["truncated"] = truncated
        self._flush()


def _trim_args(args: Dict[str, Any]) -> Dict[str, Any]:
    trimmed: Dict[str, Any] = {}
    for key, value in args.items():
        if isinstance(value, str) and len(value) > 200:
            trimmed[key] = value[:200] + "..."
        else:
            trimmed[key] = value
    return trimmed
