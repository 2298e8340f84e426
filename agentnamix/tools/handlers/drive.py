"""Google Drive 链接生成（搜索 / 新建文档）。"""

from urllib.parse import quote

from agentnamix.tools.definitions import ToolResult
from agentnamix.tools.schemas import DriveActionArgs


MY_DRIVE_URL = "https://drive.google.com/drive/my-drive"

CREATE_URLS = {
    "document": "https://docs.google.com/document/create",
    "spreadsheet": "https://docs.google.com/spreadsheets/create",
    "presentation": "https://docs.google.com/presentation/create",
}

CREATE_TITLES = {
    "spreadsheet": "📊 Nueva Hoja de Cálculo",
    "presentation": "📽️ Nueva Presentación",
}


def build_drive_link(args: DriveActionArgs) -> str:
    if args.action == "SEARCH":
        return f"https://drive.google.com/drive/search?q={quote(args.query or '', safe='')}"
    return CREATE_URLS.get(args.file_type or "", MY_DRIVE_URL)


def drive_action(args: DriveActionArgs) -> ToolResult:
    link = build_drive_link(args)
    if args.action == "SEARCH":
        title = "🔍 Búsqueda en Drive"
        detail = f'Consulta: "{args.query or ""}"'
    else:
        title = CREATE_TITLES.get(args.file_type or "", "📝 Nuevo Documento")
        detail = "Crear archivo vacío en Google Drive"
    markup = f"> **{title}**\n> {detail}\n> [Abrir Drive]({link})"
    return ToolResult(
        call_id=None,
        name="google_drive",
        success=True,
        data={"success": True, "message": "Enlace de Drive generado.", "link": link},
        markup=markup,
    )
