"""工具参数的 Pydantic 校验模型。

模型返回的 functionCall.args 使用 camelCase 字段名（与声明保持一致），
这里通过 alias 映射为 Python 风格的属性名。未声明的多余字段直接忽略。
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolArgs(BaseModel):
    """所有工具参数模型的基类。"""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BrowserActionArgs(ToolArgs):
    action: Literal["NAVIGATE", "CLICK", "TYPE", "SCROLL"]
    target: Optional[str] = None
    value: Optional[str] = None


class WebScrapeArgs(ToolArgs):
    url: str = Field(min_length=1)


class CalendarEventArgs(ToolArgs):
    title: str
    description: str = ""
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    location: Optional[str] = None
    color: Optional[str] = None


class DriveActionArgs(ToolArgs):
    action: Literal["SEARCH", "CREATE"]
    query: Optional[str] = None
    file_type: Optional[Literal["document", "spreadsheet", "presentation", "folder"]] = Field(
        default=None, alias="fileType"
    )


class FileBlueprintArgs(ToolArgs):
    path: str = Field(min_length=1)
    language: str = ""
    content: str = ""


class ProjectStructureArgs(ToolArgs):
    project_name: str = Field(alias="projectName", min_length=1)
    description: Optional[str] = None
    files: List[FileBlueprintArgs]


class MemoryActionArgs(ToolArgs):
    action: Literal["STORE", "RETRIEVE", "FORGET"]
    content: Optional[str] = None
    query: Optional[str] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    memory_id: Optional[str] = Field(default=None, alias="memoryId")


class SshCommandArgs(ToolArgs):
    command: str = Field(min_length=1)
    reasoning: str = ""


class Generate3DModelArgs(ToolArgs):
    description: str = Field(min_length=1)
