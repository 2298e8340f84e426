"""软件架构师工具：接收模型生成的多文件项目，推送给编辑器并生成文件树展示。"""

from typing import List, Optional, Sequence

from agentnamix.domain.events import FileBlueprint, ProjectStructure, ProjectUpdateCallback
from agentnamix.tools.definitions import ToolResult
from agentnamix.tools.schemas import ProjectStructureArgs


JS_LANGUAGES = ("javascript", "js")


def to_project(args: ProjectStructureArgs) -> ProjectStructure:
    return ProjectStructure(
        project_name=args.project_name,
        description=args.description,
        files=[FileBlueprint(path=f.path, language=f.language, content=f.content) for f in args.files],
    )


def assemble_preview(files: Sequence[FileBlueprint]) -> Optional[str]:
    """把项目拼装成单文件 HTML（内联 CSS 与 JS），没有 HTML 入口时返回 None。"""

    entry = next((f for f in files if f.path.endswith("index.html") or f.language == "html"), None)
    if entry is None:
        return None
    html = entry.content

    css = "".join(f"\n/* {f.path} */\n{f.content}\n" for f in files if f.language == "css")
    if css:
        if "</head>" in html:
            html = html.replace("</head>", f"<style>{css}</style></head>", 1)
        else:
            html += f"<style>{css}</style>"

    js = "".join(f"\n// {f.path}\n{f.content}\n" for f in files if f.language in JS_LANGUAGES)
    if js:
        if "</body>" in html:
            html = html.replace("</body>", f"<script>{js}</script></body>", 1)
        else:
            html += f"<script>{js}</script>"
    return html


def render_file_tree(files: Sequence[FileBlueprint]) -> str:
    lines: List[str] = []
    for f in sorted(files, key=lambda item: item.path):
        depth = f.path.count("/")
        lines.append(f"{'  ' * depth}- `{f.path}` ({f.language or 'txt'})")
    return "\n".join(lines)


class ArchitectTool:
    def __init__(self, on_project_update: Optional[ProjectUpdateCallback] = None):
        self._on_project_update = on_project_update

    def __call__(self, args: ProjectStructureArgs) -> ToolResult:
        project = to_project(args)
        if self._on_project_update:
            self._on_project_update(project)

        has_preview = assemble_preview(project.files) is not None
        parts = [f"### 🏗️ ARQUITECTURA: {project.project_name}"]
        if project.description:
            parts.append(f"_{project.description}_")
        parts.append(render_file_tree(project.files))
        if has_preview:
            parts.append("🖥️ Vista previa disponible en el editor.")
        return ToolResult(
            call_id=None,
            name="software_architect",
            success=True,
            data={
                "success": True,
                "message": "Arquitectura generada y renderizada con vista previa.",
                "file_count": len(project.files),
                "has_preview": has_preview,
            },
            markup="\n\n".join(parts),
        )
