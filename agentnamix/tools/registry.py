"""工具注册表。

根据 AgentConfiguration 中启用的能力生成：
- native_search: 是否启用模型原生的联网搜索（web_search）。
- declarations: 传给模型的函数声明，按固定顺序排列。
- handlers: 函数名 -> ToolSpec 的分发表。

注册表本身只做声明与分发，不执行任何工具。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from agentnamix.domain.agent import AgentConfiguration
from agentnamix.domain.conversation import AgentStore
from agentnamix.domain.events import BrowserActionCallback, ProjectUpdateCallback
from agentnamix.tools.definitions import ToolDef, ToolParam, ToolResult, ToolType
from agentnamix.tools.handlers.architect import ArchitectTool
from agentnamix.tools.handlers.browser import BrowserSession
from agentnamix.tools.handlers.calendar import schedule_event
from agentnamix.tools.handlers.drive import drive_action
from agentnamix.tools.handlers.memory import MemoryTool
from agentnamix.tools.handlers.modeler import ModelerTool
from agentnamix.tools.handlers.ssh import Shell, SshTool, create_shell
from agentnamix.tools.schemas import (
    BrowserActionArgs,
    CalendarEventArgs,
    DriveActionArgs,
    Generate3DModelArgs,
    MemoryActionArgs,
    ProjectStructureArgs,
    SshCommandArgs,
    WebScrapeArgs,
)


@dataclass(frozen=True)
class ToolSpec:
    declaration: ToolDef
    args_model: Type[BaseModel]
    fn: Callable[[Any], ToolResult]


@dataclass
class ToolContext:
    """单个任务执行期间工具所需的协作者。"""

    store: Optional[AgentStore] = None
    gateway: Any = None
    browser: Optional[BrowserSession] = None
    shell: Optional[Shell] = None
    on_browser_action: Optional[BrowserActionCallback] = None
    on_project_update: Optional[ProjectUpdateCallback] = None


@dataclass
class ToolSet:
    native_search: bool
    declarations: List[ToolDef] = field(default_factory=list)
    handlers: Dict[str, ToolSpec] = field(default_factory=dict)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self.handlers.get(name)


def _string(name: str, description: str, required: bool = False, enum: Optional[List[str]] = None) -> ToolParam:
    schema: Dict[str, Any] = {"type": "string"}
    if enum:
        schema["enum"] = enum
    return ToolParam(name=name, description=description, required=required, schema=schema)


def _params(*items: ToolParam) -> Dict[str, ToolParam]:
    return {p.name: p for p in items}


BROWSER_TOOL = ToolDef(
    name="browser_action",
    description=(
        "Realiza una acción en el navegador web simulado. Útil para navegar, hacer clic en enlaces "
        "visibles o buscar información interactivamente."
    ),
    params=_params(
        _string("action", "El tipo de acción a realizar.", True, ["NAVIGATE", "CLICK", "TYPE", "SCROLL"]),
        _string("target", "Para CLICK: El texto exacto del enlace. Para TYPE: irrelevante."),
        _string("value", "Para NAVIGATE: La URL completa. Para TYPE: El texto a buscar."),
    ),
)

SCRAPE_TOOL = ToolDef(
    name="web_scrape",
    description=(
        "Extrae el contenido de texto completo de una URL específica. Úsalo cuando necesites leer "
        "datos masivos de una página sin navegar interactivamente."
    ),
    params=_params(_string("url", "La URL completa de la página a analizar.", True)),
)

CALENDAR_TOOL = ToolDef(
    name="google_calendar",
    description=(
        "Programa un evento en el Google Calendar. Genera un enlace directo para que el usuario "
        "guarde el evento."
    ),
    params=_params(
        _string("title", "Título del evento", True),
        _string("description", "Descripción detallada del evento"),
        _string("startTime", "Fecha y hora de inicio (ISO 8601 o YYYY-MM-DD HH:MM)", True),
        _string("endTime", "Fecha y hora de fin (ISO 8601 o YYYY-MM-DD HH:MM)", True),
        _string("location", "Ubicación (opcional)"),
        _string("color", "Color del evento (Rojo, Azul, Verde, Amarillo, etc)"),
    ),
)

DRIVE_TOOL = ToolDef(
    name="google_drive",
    description=(
        "Interactúa con Google Drive. Permite generar enlaces para buscar archivos o crear nuevos "
        "documentos (Docs, Sheets, Slides)."
    ),
    params=_params(
        _string("action", "Buscar o Crear archivo", True, ["SEARCH", "CREATE"]),
        _string("query", "Términos de búsqueda (solo si action es SEARCH)"),
        _string(
            "fileType",
            "Tipo de archivo a crear (solo si action es CREATE)",
            enum=["document", "spreadsheet", "presentation"],
        ),
    ),
)

ARCHITECT_TOOL = ToolDef(
    name="software_architect",
    description=(
        "Genera una estructura de proyecto de software completa con múltiples archivos y código. "
        "Úsalo cuando te pidan diseñar una app, script o arquitectura."
    ),
    params=_params(
        _string("projectName", "Nombre del proyecto", True),
        _string("description", "Descripción breve de la arquitectura"),
        ToolParam(
            name="files",
            description="Archivos del proyecto",
            required=True,
            schema={
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "path": {
                            "type": "string",
                            "description": "Ruta relativa del archivo (ej: src/utils/api.ts, index.html, css/style.css)",
                        },
                        "language": {
                            "type": "string",
                            "description": "Lenguaje de programación (ts, js, py, html, css, json)",
                        },
                        "content": {"type": "string", "description": "Código fuente completo del archivo"},
                    },
                    "required": ["path", "language", "content"],
                },
            },
        ),
    ),
)

MEMORY_TOOL = ToolDef(
    name="memory_system",
    description=(
        "Sistema de Memoria Persistente. Úsalo para recordar información importante para el futuro "
        "o recuperar información de sesiones pasadas."
    ),
    params=_params(
        _string("action", "Guardar, Recuperar o Olvidar", True, ["STORE", "RETRIEVE", "FORGET"]),
        _string("content", "Lo que se debe recordar (solo para STORE)"),
        _string("query", "Término de búsqueda (solo para RETRIEVE)"),
        _string("priority", "Importancia del recuerdo (solo para STORE)", enum=["low", "medium", "high"]),
        _string("memoryId", "ID del recuerdo a borrar (solo para FORGET)"),
    ),
)

SSH_TOOL = ToolDef(
    name="aura_ssh_command",
    description=(
        "Ejecuta un comando de terminal Linux en el servidor remoto configurado. Úsalo para gestión "
        "de archivos, directorios, instalación de paquetes y tareas de SysAdmin."
    ),
    params=_params(
        _string("command", "El comando de shell a ejecutar (ej: ls -la, mkdir test, git clone ...)", True),
        _string("reasoning", "Breve explicación de por qué ejecutas este comando.", True),
    ),
)

MODELER_TOOL = ToolDef(
    name="generate_3d_model",
    description=(
        "Genera un modelo 3D declarativo (lista de primitivas) para la escena actual. Úsalo cuando "
        "el usuario pida visualizar o crear objetos 3D."
    ),
    params=_params(_string("description", "Descripción detallada del objeto a crear", True)),
)


TOOL_GUIDANCE: Dict[str, str] = {
    "web_scrape": "Usa 'web_scrape' para obtener datos masivos de una URL conocida sin navegar paso a paso.",
    "google_calendar": "Usa 'google_calendar' cuando necesites agendar una reunión o evento.",
    "google_drive": "Usa 'google_drive' para buscar archivos existentes o crear nuevos documentos/hojas de cálculo.",
    "software_architect": (
        "Usa 'software_architect' para diseñar aplicaciones. SIEMPRE incluye 'index.html' si es una "
        "aplicación web para que el usuario pueda ver la VISTA PREVIA. Genera código completo, no omitas partes."
    ),
    "image_analyzer": (
        "Tienes CAPACIDAD VISUAL. Se te han proporcionado imágenes. Analízalas detalladamente para responder "
        "a la tarea. Describe objetos, lee textos (OCR) y detecta patrones visuales si es necesario."
    ),
    "model_3d": (
        "Tienes acceso a un ESTUDIO 3D. Si el usuario pide crear objetos 3D, figuras o escenas, usa la "
        "herramienta 'generate_3d_model'."
    ),
    "memory_system": (
        "Usa 'memory_system' para guardar preferencias del usuario, hechos importantes o resultados clave "
        "que deban persistir. Antes de responder, verifica si hay información relevante en la memoria."
    ),
}


def tool_guidance(config: AgentConfiguration) -> List[str]:
    """按启用的能力生成系统提示中的工具使用说明。"""

    lines: List[str] = []
    for tool in ("web_scrape", "google_calendar", "google_drive", "software_architect"):
        if config.has_tool(tool):
            lines.append(TOOL_GUIDANCE[tool])
    if config.has_tool("image_analyzer") and config.images:
        lines.append(TOOL_GUIDANCE["image_analyzer"])
    if config.has_tool("aura_ssh"):
        ssh = config.ssh_config
        mode = "REAL (PRODUCCIÓN)" if ssh is not None and ssh.mode == "real" else "SIMULADO"
        host = (ssh.host if ssh is not None else "") or "remoto"
        lines.append(
            f"Tienes ACCESO SSH ({mode}) al servidor {host}. Usa 'aura_ssh_command' para ejecutar comandos. "
            "Eres un SysAdmin experto."
        )
    if config.has_tool("model_3d"):
        lines.append(TOOL_GUIDANCE["model_3d"])
    if config.has_tool("memory_system"):
        lines.append(TOOL_GUIDANCE["memory_system"])
    return lines


def build_toolset(config: AgentConfiguration, context: Optional[ToolContext] = None) -> ToolSet:
    """根据配置快照构建本次任务可用的工具集合。"""

    ctx = context or ToolContext()
    toolset = ToolSet(native_search=config.has_tool("web_search"))

    def register(capability: ToolType, declaration: ToolDef, args_model: Type[BaseModel], fn) -> None:
        if not config.has_tool(capability):
            return
        toolset.declarations.append(declaration)
        toolset.handlers[declaration.name] = ToolSpec(declaration=declaration, args_model=args_model, fn=fn)

    needs_browser = config.has_tool("browser_interaction") or config.has_tool("web_scrape")
    browser = ctx.browser or (BrowserSession(on_action=ctx.on_browser_action) if needs_browser else None)

    if browser is not None:
        register("browser_interaction", BROWSER_TOOL, BrowserActionArgs, browser.perform)
        register("web_scrape", SCRAPE_TOOL, WebScrapeArgs, browser.scrape)
    register("google_calendar", CALENDAR_TOOL, CalendarEventArgs, schedule_event)
    register("google_drive", DRIVE_TOOL, DriveActionArgs, drive_action)
    register("software_architect", ARCHITECT_TOOL, ProjectStructureArgs, ArchitectTool(ctx.on_project_update))
    if ctx.store is not None:
        register("memory_system", MEMORY_TOOL, MemoryActionArgs, MemoryTool(ctx.store))
    if config.has_tool("aura_ssh"):
        shell = ctx.shell or create_shell(config.ssh_config)
        register("aura_ssh", SSH_TOOL, SshCommandArgs, SshTool(shell, config.ssh_config))
    if ctx.gateway is not None:
        register("model_3d", MODELER_TOOL, Generate3DModelArgs, ModelerTool(ctx.gateway))
    return toolset
