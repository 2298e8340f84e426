"""执行循环向 UI 推送的副作用事件。

浏览器动作使用可辨识联合（NavigateAction / ClickAction / TypeAction / ScrollAction），
UI 可以按类型渲染实时预览；项目结构更新用于驱动代码编辑器。
"""

from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional, Union


@dataclass(frozen=True)
class NavigateAction:
    url: str
    kind: Literal["navigate"] = "navigate"


@dataclass(frozen=True)
class ClickAction:
    target: str
    kind: Literal["click"] = "click"


@dataclass(frozen=True)
class TypeAction:
    text: str
    kind: Literal["type"] = "type"


@dataclass(frozen=True)
class ScrollAction:
    kind: Literal["scroll"] = "scroll"


BrowserActionEvent = Union[NavigateAction, ClickAction, TypeAction, ScrollAction]


@dataclass(frozen=True)
class FileBlueprint:
    path: str
    language: str
    content: str


@dataclass(frozen=True)
class ProjectStructure:
    project_name: str
    files: List[FileBlueprint] = field(default_factory=list)
    description: Optional[str] = None

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]


BrowserActionCallback = Callable[[BrowserActionEvent], None]
ProjectUpdateCallback = Callable[[ProjectStructure], None]
