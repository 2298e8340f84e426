import json

from websockets.exceptions import ConnectionClosed

from agentnamix.domain.agent import SshConfiguration
from agentnamix.tools.handlers.ssh import (
    NOT_CONNECTED_MESSAGE,
    TIMEOUT_MESSAGE,
    BridgeShell,
    SimulatedShell,
    SshTool,
    create_shell,
)
from agentnamix.tools.schemas import SshCommandArgs


REAL = SshConfiguration(mode="real", host="srv.local", port="2222", username="root", password="pw", proxy_url="ws://bridge")


def output(content):
    return json.dumps({"type": "OUTPUT", "content": content})


class FakeSocket:
    """stale 在 EXEC 之前返回，replies 在 EXEC 之后依次返回；取完后 recv 超时。"""

    def __init__(self, stale=(), replies=()):
        self.sent = []
        self.stale = list(stale)
        self.replies = list(replies)
        self.exec_sent = False
        self.closed = False

    def send(self, message):
        data = json.loads(message)
        self.sent.append(data)
        if data["type"] == "EXEC":
            self.exec_sent = True

    def recv(self, timeout=None):
        queue = self.replies if self.exec_sent else self.stale
        if not queue:
            raise TimeoutError
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        self.closed = True


def bridge(socket, **kw):
    shell = BridgeShell(REAL, connect=lambda url: socket, poll_attempts=kw.get("attempts", 3), poll_interval=0.01)
    assert shell.connect() is True
    return shell


def test_simulated_shell_filesystem():
    shell = SimulatedShell()
    assert shell.execute("pwd") == "/home/user"
    assert "readme.txt" in shell.execute("ls -la")
    shell.execute("mkdir proyecto")
    assert "proyecto" in shell.execute("ls")
    shell.execute("cd /var/www/html")
    assert shell.execute("ls") == "index.html\nstyle.css"
    shell.execute("cd ..")
    assert shell.cwd == "/var/www"
    assert shell.execute("ls") == "(empty directory)"
    assert shell.execute("whoami") == "root"
    assert "[SUCCESS]" in shell.execute("apt install nginx")
    assert shell.execute("echo hola") == "[AURA EXEC] Comando simulado ejecutado: echo hola"


def test_simulated_shells_do_not_share_state():
    a, b = SimulatedShell(), SimulatedShell()
    a.execute("touch nuevo.txt")
    assert "nuevo.txt" not in b.execute("ls")


def test_bridge_sends_auth():
    socket = FakeSocket()
    bridge(socket)
    auth = socket.sent[0]
    assert auth["type"] == "AUTH"
    assert auth["port"] == 2222
    assert auth["host"] == "srv.local"


def test_bridge_collects_output_until_quiet():
    socket = FakeSocket(replies=[output("total 0\n"), output("drwx proyecto")])
    shell = bridge(socket)
    assert shell.execute("ls -la") == "total 0\ndrwx proyecto"
    assert socket.sent[-1] == {"type": "EXEC", "command": "ls -la"}


def test_bridge_drains_stale_output():
    socket = FakeSocket(stale=[output("salida vieja")], replies=[output("nueva")])
    shell = bridge(socket)
    assert shell.execute("pwd") == "nueva"


def test_bridge_timeout_without_output():
    shell = bridge(FakeSocket())
    assert shell.execute("sleep 100") == TIMEOUT_MESSAGE


def test_bridge_ignores_non_output_messages():
    socket = FakeSocket(replies=[json.dumps({"type": "STATUS", "content": "ok"}), "no-json", output("hecho")])
    shell = bridge(socket, attempts=5)
    assert shell.execute("make") == "hecho"


def test_bridge_connection_closed():
    socket = FakeSocket(replies=[ConnectionClosed(None, None)])
    shell = bridge(socket)
    assert shell.execute("ls") == NOT_CONNECTED_MESSAGE
    assert shell.connected is False
    assert shell.execute("ls") == NOT_CONNECTED_MESSAGE


def test_bridge_connect_failure():
    def refuse(url):
        raise OSError("connection refused")

    shell = BridgeShell(REAL, connect=refuse)
    assert shell.connect() is False
    assert shell.execute("ls") == NOT_CONNECTED_MESSAGE


def test_create_shell_by_mode():
    assert isinstance(create_shell(None), SimulatedShell)
    assert isinstance(create_shell(SshConfiguration(mode="simulated")), SimulatedShell)
    assert isinstance(create_shell(REAL), BridgeShell)


def test_ssh_tool_markup():
    tool = SshTool(SimulatedShell(), SshConfiguration(host="demo"))
    result = tool(SshCommandArgs(command="uptime", reasoning="estado"))
    assert result.success is True
    assert "load average" in result.data["output"]
    assert "root@demo" in result.markup
    assert "_Razón: estado_" in result.markup


def test_bridge_auth_failure_closes_socket():
    class RefusingSocket(FakeSocket):
        def send(self, message):
            raise OSError("broken pipe")

    socket = RefusingSocket()
    shell = BridgeShell(REAL, connect=lambda url: socket)
    assert shell.connect() is False
    assert socket.closed is True
    assert shell.connected is False
