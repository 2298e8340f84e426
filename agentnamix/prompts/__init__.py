"""提示词模板加载工具。

模板按语言(locale) 存放在 prompts/<locale>/*.md，
调用方拿到文本后用 str.format 填充占位符（模板中的字面花括号写作 {{ }}）。
"""

from pathlib import Path
from typing import Sequence


PROMPTS_DIR = Path(__file__).resolve().parent


def load_prompt(name: str, locale: str = "es") -> str:
    """根据模板名和语言加载提示词文本。"""

    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8")


def format_documents(documents: Sequence) -> str:
    """把知识文档拼成知识库段落，没有文档时返回空字符串。"""

    if not documents:
        return ""
    body = "\n\n".join(
        f"--- INICIO DE DOCUMENTO: {d.name} ---\n{d.content}\n--- FIN DE DOCUMENTO ---" for d in documents
    )
    return (
        "====== BASE DE CONOCIMIENTO (DOCUMENTOS CARGADOS) ======\n"
        f"{body}\n"
        "========================================================"
    )
