import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from agentnamix.config.settings import settings
from agentnamix.domain.agent import (
    AgentConfiguration,
    AgentDocument,
    MemoryRecord,
    MemoryType,
    Priority,
    SavedAgent,
    SshConfiguration,
)
from agentnamix.domain.conversation import AgentStore, find_memory, memory_to_dict
from agentnamix.domain.exceptions import BusinessError


DEFAULT_AGENTS: List[SavedAgent] = [
    SavedAgent(
        id="default-researcher",
        config=AgentConfiguration(
            name="Investigador",
            description="Experto en búsqueda web y síntesis de información. Prioriza fuentes fiables y datos recientes.",
            tools=frozenset({"web_search", "deep_analysis"}),
            model="gemini-2.5-flash",
        ),
        is_default=True,
    ),
    SavedAgent(
        id="default-coder",
        config=AgentConfiguration(
            name="Ingeniero de Software",
            description="Especialista en generar código limpio, seguro y bien documentado.",
            tools=frozenset({"code_execution", "software_architect"}),
            model="gemini-2.5-flash",
        ),
        is_default=True,
    ),
    SavedAgent(
        id="default-analyst",
        config=AgentConfiguration(
            name="Analista de Datos",
            description="Capaz de procesar información compleja y encontrar patrones.",
            tools=frozenset({"deep_analysis", "memory_system"}),
            model="gemini-3-pro",
        ),
        is_default=True,
    ),
]


class JsonAgentStore(AgentStore):
    """基于 JSON 文件的 Agent 预设与长期记忆存储。

    目录结构::

        {root}/agents.json     已保存的 Agent 预设（首次使用时写入默认预设）
        {root}/memories.json   长期记忆记录
    """

    def __init__(self, root: str | Path | None = None, seed_defaults: bool = True):
        self._root = Path(root or settings.storage_root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._agents_path = self._root / "agents.json"
        self._memories_path = self._root / "memories.json"
        if seed_defaults and not self._read_list(self._agents_path):
            for agent in DEFAULT_AGENTS:
                self.save_agent(agent)

    # ---- agents ----

    def list_agents(self) -> List[SavedAgent]:
        return [self._to_agent(item) for item in self._read_list(self._agents_path)]

    def save_agent(self, agent: SavedAgent) -> None:
        items = self._read_list(self._agents_path)
        payload = self._agent_payload(agent)
        for idx, item in enumerate(items):
            if item.get("id") == agent.id:
                # 更新时保留 is_default 标记
                payload["is_default"] = bool(item.get("is_default", False))
                items[idx] = payload
                break
        else:
            items.append(payload)
        self._write_list(self._agents_path, items)

    def delete_agent(self, agent_id: str) -> None:
        items = self._read_list(self._agents_path)
        remaining = [item for item in items if item.get("id") != agent_id]
        self._write_list(self._agents_path, remaining)

    # ---- memories ----

    def add_memory(self, content: str, type: MemoryType = "note", priority: Priority = "medium") -> MemoryRecord:
        now = time.time()
        record = MemoryRecord(
            id=f"mem-{int(now * 1000)}-{uuid4().hex[:9]}",
            content=content,
            type=type,
            priority=priority,
            timestamp=now,
        )
        items = self._read_list(self._memories_path)
        items.append(memory_to_dict(record))
        self._write_list(self._memories_path, items)
        return record

    def search_memories(self, query: str, limit: int = 5) -> List[MemoryRecord]:
        needle = (query or "").lower()
        matches = [m for m in self._memories() if needle in m.content.lower()]
        matches.sort(key=lambda m: m.timestamp, reverse=True)
        return matches[:limit]

    def get_high_priority_memories(self, limit: int = 10) -> List[MemoryRecord]:
        matches = [m for m in self._memories() if m.priority == "high"]
        matches.sort(key=lambda m: m.timestamp, reverse=True)
        return matches[:limit]

    def forget_memory(self, memory_id: str) -> bool:
        records = self._memories()
        if find_memory(records, memory_id) is None:
            return False
        remaining = [memory_to_dict(m) for m in records if m.id != memory_id]
        self._write_list(self._memories_path, remaining)
        return True

    def clear_memories(self) -> None:
        self._write_list(self._memories_path, [])

    # ---- helpers ----

    def _memories(self) -> List[MemoryRecord]:
        records: List[MemoryRecord] = []
        for item in self._read_list(self._memories_path):
            try:
                records.append(
                    MemoryRecord(
                        id=item["id"],
                        content=item.get("content") or "",
                        type=item.get("type") or "note",
                        priority=item.get("priority") or "medium",
                        timestamp=float(item.get("timestamp", 0)),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return records

    def _read_list(self, path: Path) -> List[Dict[str, Any]]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))
        return data if isinstance(data, list) else []

    def _write_list(self, path: Path, items: List[Dict[str, Any]]) -> None:
        tmp_path = path.with_name(f"{path.stem}.{uuid4().hex}.json.tmp")
        try:
            tmp_path.write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))

    @staticmethod
    def _agent_payload(agent: SavedAgent) -> Dict[str, Any]:
        cfg = agent.config
        ssh: Optional[Dict[str, Any]] = None
        if cfg.ssh_config:
            ssh = {
                "mode": cfg.ssh_config.mode,
                "host": cfg.ssh_config.host,
                "port": cfg.ssh_config.port,
                "username": cfg.ssh_config.username,
                "proxy_url": cfg.ssh_config.proxy_url,
            }
        return {
            "id": agent.id,
            "name": cfg.name,
            "description": cfg.description,
            "tools": sorted(cfg.tools),
            "model": cfg.model,
            "documents": [{"name": d.name, "content": d.content} for d in cfg.documents],
            "ssh_config": ssh,
            "is_default": agent.is_default,
        }

    @staticmethod
    def _to_agent(data: Dict[str, Any]) -> SavedAgent:
        ssh_raw = data.get("ssh_config")
        return SavedAgent(
            id=data["id"],
            config=AgentConfiguration(
                name=data.get("name") or "",
                description=data.get("description") or "",
                tools=frozenset(data.get("tools") or []),
                model=data.get("model") or settings.default_model,
                documents=tuple(
                    AgentDocument(name=d.get("name", ""), content=d.get("content", ""))
                    for d in data.get("documents") or []
                ),
                ssh_config=SshConfiguration(**ssh_raw) if ssh_raw else None,
            ),
            is_default=bool(data.get("is_default", False)),
        )
