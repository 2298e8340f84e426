"""3D 模型生成工具。

模型只返回声明式的场景描述（图元 + 参数），经 Pydantic 校验后才交给渲染端，
不执行任何模型生成的代码。
"""

import json
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from agentnamix.domain.exceptions import ToolExecutionError
from agentnamix.prompts import load_prompt
from agentnamix.tools.definitions import ToolResult
from agentnamix.tools.schemas import Generate3DModelArgs


MODELER_MODEL = "gemini-2.5-flash"
MODELER_TEMPERATURE = 0.2
MAX_SCENE_OBJECTS = 50

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

Vector3 = List[float]


class SceneObject(BaseModel):
    model_config = ConfigDict(extra="forbid")

    primitive: Literal["box", "sphere", "cylinder", "cone", "torus", "plane"]
    size: Vector3 = Field(default_factory=lambda: [1.0, 1.0, 1.0], min_length=1, max_length=3)
    position: Vector3 = Field(default_factory=lambda: [0.0, 0.0, 0.0], min_length=3, max_length=3)
    rotation: Vector3 = Field(default_factory=lambda: [0.0, 0.0, 0.0], min_length=3, max_length=3)
    color: str = Field(default="#cccccc", pattern=r"^#[0-9a-fA-F]{6}$")
    name: Optional[str] = None


class SceneDescription(BaseModel):
    model_config = ConfigDict(extra="forbid")

    objects: List[SceneObject] = Field(min_length=1, max_length=MAX_SCENE_OBJECTS)


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", (text or "").strip()).strip()


def parse_scene(text: str) -> SceneDescription:
    """解析并校验场景 JSON，失败时抛出 ToolExecutionError。"""

    try:
        return SceneDescription.model_validate(json.loads(strip_fences(text)))
    except json.JSONDecodeError as e:
        raise ToolExecutionError(code="INVALID_SCENE", message=f"La escena generada no es JSON válido: {e}")
    except PydanticValidationError as e:
        raise ToolExecutionError(code="INVALID_SCENE", message=f"La escena generada no es válida: {e}")


def generate_scene(gateway, description: str) -> SceneDescription:
    prompt = load_prompt("scene_generator").format(description=description)
    text = gateway.complete(
        MODELER_MODEL,
        prompt,
        temperature=MODELER_TEMPERATURE,
        response_mime_type="application/json",
    )
    return parse_scene(text)


def render_scene(description: str, scene: SceneDescription) -> str:
    lines = [f"🧩 **Modelo 3D generado**: {description} ({len(scene.objects)} objetos)", ""]
    for obj in scene.objects:
        label = f' "{obj.name}"' if obj.name else ""
        x, y, z = obj.position
        lines.append(f"- {obj.primitive}{label} en ({x:g}, {y:g}, {z:g}) color {obj.color}")
    lines.extend(["", "```json", scene.model_dump_json(indent=2), "```"])
    return "\n".join(lines)


class ModelerTool:
    def __init__(self, gateway):
        self._gateway = gateway

    def __call__(self, args: Generate3DModelArgs) -> ToolResult:
        scene = generate_scene(self._gateway, args.description)
        return ToolResult(
            call_id=None,
            name="generate_3d_model",
            success=True,
            data={"success": True, "object_count": len(scene.objects)},
            markup=render_scene(args.description, scene),
        )
