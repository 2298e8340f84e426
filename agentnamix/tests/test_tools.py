from agentnamix.domain.agent import AgentConfiguration
from agentnamix.domain.exceptions import ToolExecutionError
from agentnamix.domain.events import ProjectStructure
from agentnamix.infrastructure.storage.json_store import JsonAgentStore
from agentnamix.tools.definitions import ToolCall, ToolResult
from agentnamix.tools.executor import ToolExecutor
from agentnamix.tools.handlers.architect import assemble_preview
from agentnamix.tools.handlers.browser import BrowserSession
from agentnamix.tools.handlers.calendar import build_calendar_link, format_calendar_date
from agentnamix.tools.handlers.drive import build_drive_link, drive_action
from agentnamix.tools.registry import ToolContext, ToolSet, ToolSpec, build_toolset, tool_guidance
from agentnamix.tools.schemas import CalendarEventArgs, DriveActionArgs, WebScrapeArgs


ALL_TOOLS = {
    "web_search",
    "browser_interaction",
    "web_scrape",
    "google_calendar",
    "google_drive",
    "software_architect",
    "memory_system",
    "aura_ssh",
    "model_3d",
}


def test_build_toolset_order_and_native_search(tmp_path):
    config = AgentConfiguration(name="a", description="d", tools=ALL_TOOLS)
    ctx = ToolContext(
        store=JsonAgentStore(root=tmp_path, seed_defaults=False),
        gateway=object(),
        browser=BrowserSession(fetch=lambda url: "x" * 100),
    )
    toolset = build_toolset(config, ctx)
    assert toolset.native_search is True
    assert [d.name for d in toolset.declarations] == [
        "browser_action",
        "web_scrape",
        "google_calendar",
        "google_drive",
        "software_architect",
        "memory_system",
        "aura_ssh_command",
        "generate_3d_model",
    ]


def test_build_toolset_only_enabled_tools():
    config = AgentConfiguration(name="a", description="d", tools={"google_drive", "memory_system"})
    toolset = build_toolset(config)
    # memory_system requires a store
    assert [d.name for d in toolset.declarations] == ["google_drive"]
    assert toolset.native_search is False


def test_tool_guidance_mentions_ssh_mode():
    config = AgentConfiguration(name="a", description="d", tools={"aura_ssh", "web_scrape"})
    lines = tool_guidance(config)
    assert any("web_scrape" in line for line in lines)
    assert any("SIMULADO" in line for line in lines)


def test_executor_unknown_tool():
    executor = ToolExecutor(ToolSet(native_search=False))
    result = executor.execute(ToolCall(id="c1", name="nope", arguments={}))
    assert result.success is False
    assert result.call_id == "c1"
    assert "nope" in result.data["message"]


def test_executor_invalid_arguments():
    config = AgentConfiguration(name="a", description="d", tools={"google_drive"})
    executor = ToolExecutor(build_toolset(config))
    result = executor.execute(ToolCall(id="c1", name="google_drive", arguments={"action": "DELETE"}))
    assert result.success is False
    assert "Argumentos inválidos" in result.data["message"]


def test_executor_converts_handler_errors():
    def boom(args):
        raise ToolExecutionError(code="X", message="falló la herramienta")

    def crash(args):
        raise RuntimeError("kaput")

    toolset = ToolSet(native_search=False)
    toolset.handlers["boom"] = ToolSpec(declaration=None, args_model=WebScrapeArgs, fn=boom)
    toolset.handlers["crash"] = ToolSpec(declaration=None, args_model=WebScrapeArgs, fn=crash)
    executor = ToolExecutor(toolset)

    res = executor.execute(ToolCall(id="1", name="boom", arguments={"url": "a.com"}))
    assert res.success is False
    assert res.data["message"] == "falló la herramienta"

    res = executor.execute(ToolCall(id="2", name="crash", arguments={"url": "a.com"}))
    assert res.success is False
    assert "kaput" in res.data["message"]


def test_executor_sets_call_id_on_success():
    def ok(args):
        return ToolResult(call_id=None, name="ok", success=True, data={"success": True})

    toolset = ToolSet(native_search=False)
    toolset.handlers["ok"] = ToolSpec(declaration=None, args_model=WebScrapeArgs, fn=ok)
    res = ToolExecutor(toolset).execute(ToolCall(id="call-9", name="ok", arguments={"url": "a.com"}))
    assert res.success is True
    assert res.call_id == "call-9"


def test_format_calendar_date():
    assert format_calendar_date("2025-03-01T10:00:00Z") == "20250301T100000Z"
    assert format_calendar_date("2025-03-01T10:00:00+02:00") == "20250301T080000Z"
    assert format_calendar_date("2025-03-01 10:00") == "20250301T100000Z"
    assert format_calendar_date("mañana por la tarde") == ""


def test_calendar_link():
    args = CalendarEventArgs.model_validate(
        {
            "title": "Reunión",
            "description": "Plan Q2",
            "startTime": "2025-03-01T10:00:00Z",
            "endTime": "2025-03-01T11:00:00Z",
            "location": "Madrid",
        }
    )
    link = build_calendar_link(args)
    assert link.startswith("https://calendar.google.com/calendar/render?action=TEMPLATE")
    assert "dates=20250301T100000Z%2F20250301T110000Z" in link
    assert "location=Madrid" in link


def test_calendar_link_skips_unparseable_dates():
    args = CalendarEventArgs.model_validate({"title": "X", "startTime": "pronto", "endTime": "luego"})
    assert "dates=" not in build_calendar_link(args)


def test_drive_links():
    search = DriveActionArgs.model_validate({"action": "SEARCH", "query": "informe anual"})
    assert build_drive_link(search) == "https://drive.google.com/drive/search?q=informe%20anual"
    sheet = DriveActionArgs.model_validate({"action": "CREATE", "fileType": "spreadsheet"})
    assert build_drive_link(sheet) == "https://docs.google.com/spreadsheets/create"
    folder = DriveActionArgs.model_validate({"action": "CREATE", "fileType": "folder"})
    assert build_drive_link(folder) == "https://drive.google.com/drive/my-drive"

    result = drive_action(search)
    assert result.data["message"] == "Enlace de Drive generado."
    assert "Abrir Drive" in result.markup


def test_architect_pushes_project_and_builds_preview():
    updates = []
    config = AgentConfiguration(name="a", description="d", tools={"software_architect"})
    toolset = build_toolset(config, ToolContext(on_project_update=updates.append))
    call = ToolCall(
        id="c1",
        name="software_architect",
        arguments={
            "projectName": "Landing",
            "files": [
                {"path": "index.html", "language": "html", "content": "<html><head></head><body></body></html>"},
                {"path": "css/style.css", "language": "css", "content": "body{color:red}"},
                {"path": "js/app.js", "language": "javascript", "content": "console.log(1)"},
            ],
        },
    )
    result = ToolExecutor(toolset).execute(call)

    assert result.success is True
    assert result.data["file_count"] == 3
    assert result.data["has_preview"] is True
    assert "ARQUITECTURA: Landing" in result.markup
    assert isinstance(updates[0], ProjectStructure)

    html = assemble_preview(updates[0].files)
    assert "<style>" in html and "body{color:red}" in html
    assert "<script>" in html and "console.log(1)" in html


def test_preview_requires_html_entry():
    project = ProjectStructure(project_name="cli")
    assert assemble_preview(project.files) is None
