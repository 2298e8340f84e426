"""AURA SSH 工具。

两种执行后端：
- SimulatedShell: 内置的虚拟文件系统，用于演示与测试。
- BridgeShell: 通过 WebSocket 桥接到真实 SSH 服务器。
  协议：发送 {"type": "AUTH", ...} 完成认证，之后每条命令发送 {"type": "EXEC", "command": ...}，
  桥接端以 {"type": "OUTPUT", "content": ...} 回传输出。

桥接协议没有请求 ID，因此命令严格串行执行，并在每次 EXEC 前丢弃上一条命令的残留输出。
"""

import json
import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect as ws_connect

from agentnamix.config.settings import settings
from agentnamix.domain.agent import SshConfiguration
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.tools.definitions import ToolResult
from agentnamix.tools.schemas import SshCommandArgs


NOT_CONNECTED_MESSAGE = "ERROR: No hay conexión activa con el puente SSH (WebSocket). Verifica la configuración."
TIMEOUT_MESSAGE = "[TIMEOUT] El servidor tardó demasiado en responder o no hubo salida."
PACKAGE_MANAGERS = ("apt", "yum", "npm")


class Shell(Protocol):
    cwd: str

    def execute(self, command: str) -> str:
        ...


class SimulatedShell:
    """虚拟 shell，每个实例拥有独立的目录状态。"""

    def __init__(self, cwd: str = "/home/user", filesystem: Optional[Dict[str, List[str]]] = None):
        self.cwd = cwd
        self.filesystem = filesystem or {
            "/home/user": ["documents", "projects", "readme.txt"],
            "/var/www/html": ["index.html", "style.css"],
            "/etc/nginx": ["nginx.conf"],
        }

    def execute(self, command: str) -> str:
        cmd = command.strip()
        arg = cmd.split(" ")[1] if " " in cmd else ""

        if cmd.startswith("ls"):
            entries = self.filesystem.get(self.cwd, [])
            return "\n".join(entries) if entries else "(empty directory)"
        if cmd.startswith("cd "):
            self._change_dir(arg)
            return ""
        if cmd.startswith("pwd"):
            return self.cwd
        if cmd.startswith("mkdir "):
            self.filesystem.setdefault(self.cwd, []).append(arg)
            return ""
        if cmd.startswith(("touch ", "nano ", "vim ")):
            entries = self.filesystem.setdefault(self.cwd, [])
            if arg not in entries:
                entries.append(arg)
            return ""
        if cmd.startswith("cat "):
            return "Contenido del archivo simulado:\n# Config File\nuser=admin\nport=8080"
        if any(pm in cmd for pm in PACKAGE_MANAGERS):
            return (
                "[PROGRESS] 20%...\n[PROGRESS] 50%...\n[PROGRESS] 80%...\n"
                "[SUCCESS] Paquetes instalados/actualizados correctamente."
            )
        if "systemctl" in cmd or "service" in cmd:
            return "[SYSTEM] Servicio reiniciado correctamente. Estado: Active (Running)"
        if "whoami" in cmd:
            return "root"
        if "uptime" in cmd:
            return " 14:32:01 up 45 days, 10:22,  1 user,  load average: 0.05, 0.03, 0.01"
        return f"[AURA EXEC] Comando simulado ejecutado: {cmd}"

    def _change_dir(self, target: str) -> None:
        if target == "..":
            parent = self.cwd.rsplit("/", 1)[0]
            self.cwd = parent or "/"
        elif target.startswith("/"):
            self.cwd = target
        else:
            self.cwd = f"{self.cwd}/{target}".replace("//", "/")


class BridgeShell:
    """通过 WebSocket 桥接执行真实命令。"""

    def __init__(
        self,
        config: SshConfiguration,
        connect: Callable[..., object] = ws_connect,
        poll_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ):
        self._config = config
        self._connect = connect
        self._poll_attempts = poll_attempts if poll_attempts is not None else settings.ssh_poll_attempts
        self._poll_interval = poll_interval if poll_interval is not None else settings.ssh_poll_interval
        self._socket = None
        self._lock = threading.Lock()
        self.cwd = "~"

    @property
    def connected(self) -> bool:
        return self._socket is not None

    def connect(self) -> bool:
        """建立连接并发送 AUTH，未配置 proxy_url 时视为无需连接。"""

        if not self._config.proxy_url:
            return True
        socket = None
        try:
            socket = self._connect(self._config.proxy_url)
            socket.send(
                json.dumps(
                    {
                        "type": "AUTH",
                        "host": self._config.host,
                        "port": int(self._config.port or 22),
                        "username": self._config.username,
                        "password": self._config.password,
                    }
                )
            )
        except (OSError, TimeoutError, ValueError, WebSocketException) as e:
            log_event(logging.ERROR, "ssh bridge connection failed", proxy_url=self._config.proxy_url, error=str(e))
            if socket is not None:
                socket.close()
            return False
        self._socket = socket
        log_event(logging.INFO, "ssh bridge connected", proxy_url=self._config.proxy_url, host=self._config.host)
        return True

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def execute(self, command: str) -> str:
        with self._lock:
            if self._socket is None:
                return NOT_CONNECTED_MESSAGE
            try:
                self._drain()
                self._socket.send(json.dumps({"type": "EXEC", "command": command}))
                return self._collect()
            except ConnectionClosed:
                self._socket = None
                log_event(logging.WARNING, "ssh bridge closed", proxy_url=self._config.proxy_url)
                return NOT_CONNECTED_MESSAGE

    def _drain(self) -> None:
        # 丢弃上一条命令超时后才到达的输出
        while True:
            try:
                self._socket.recv(timeout=0)
            except TimeoutError:
                return

    def _collect(self) -> str:
        buffer = ""
        for _ in range(self._poll_attempts):
            try:
                raw = self._socket.recv(timeout=self._poll_interval)
            except TimeoutError:
                if buffer:
                    return buffer
                continue
            buffer += _output_of(raw)
        return buffer or TIMEOUT_MESSAGE


def _output_of(raw) -> str:
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        return ""
    if isinstance(message, dict) and message.get("type") == "OUTPUT":
        return str(message.get("content") or "")
    return ""


class SshTool:
    def __init__(self, shell: Shell, config: Optional[SshConfiguration] = None):
        self._shell = shell
        self._config = config or SshConfiguration()

    def __call__(self, args: SshCommandArgs) -> ToolResult:
        output = self._shell.execute(args.command)
        is_real = self._config.mode == "real"
        host = self._config.host or "remote-server"
        mode = "🔴 LIVE CONNECTION" if is_real else "🔵 SIMULATION MODE"
        markup = (
            f"**AURA SSH** · {mode} · root@{host}\n\n"
            f"_Razón: {args.reasoning}_\n\n"
            f"```\n➜ ~{self._shell.cwd} {args.command}\n{output}\n```"
        )
        return ToolResult(
            call_id=None,
            name="aura_ssh_command",
            success=True,
            data={"success": True, "output": output},
            markup=markup,
        )


def create_shell(config: Optional[SshConfiguration]) -> Shell:
    if config is not None and config.mode == "real":
        return BridgeShell(config)
    return SimulatedShell()
