"""浏览器交互与网页抓取工具。

页面内容通过文本提取代理获取（GET {proxy}{url}），返回的是 Markdown 风格的纯文本，
因此“点击”就是在当前内容里查找 Markdown 链接 [文本](href) 并加载目标页面。

所有抓取失败都会被归类为 PageFetchError，并转换成给模型看的可操作提示，不向上抛出。
"""

import logging
import re
from typing import Callable, List, Optional
from urllib.parse import quote, urljoin, urlparse

import httpx

from agentnamix.config.settings import settings
from agentnamix.domain.events import (
    BrowserActionCallback,
    BrowserActionEvent,
    ClickAction,
    NavigateAction,
    ScrollAction,
    TypeAction,
)
from agentnamix.domain.exceptions import ToolExecutionError
from agentnamix.infrastructure.logging.logger import log_event
from agentnamix.tools.definitions import ToolResult
from agentnamix.tools.schemas import BrowserActionArgs, WebScrapeArgs


INITIAL_URL = "https://www.google.com"
MIN_CONTENT_LENGTH = 50
BROWSER_SNIPPET_LIMIT = 10000
SCRAPE_CONTENT_LIMIT = 15000
MAX_LINK_SUGGESTIONS = 8

_LINK_RE = re.compile(r"\[(.*?)\]\((.*?)\)")

FETCH_MESSAGES = {
    "access_denied": "Acceso Denegado (403). El sitio bloquea bots.",
    "not_found": "Página no encontrada (404).",
    "timeout": "Tiempo de espera agotado al conectar con el sitio.",
    "empty": "Contenido vacío o ilegible recibido del proxy.",
}


class PageFetchError(ToolExecutionError):
    """网页抓取失败。

    kind 取值：access_denied / not_found / http / timeout / empty / network。
    """

    def __init__(self, kind: str, message: Optional[str] = None, **extra):
        self.kind = kind
        super().__init__(code=f"FETCH_{kind.upper()}", message=message or FETCH_MESSAGES.get(kind, kind), **extra)


def fetch_page(url: str, proxy: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """通过文本提取代理抓取页面，失败时抛出 PageFetchError。"""

    proxy_url = proxy or settings.page_proxy_url
    try:
        with httpx.Client(timeout=timeout or settings.page_fetch_timeout) as client:
            resp = client.get(
                f"{proxy_url}{url}",
                headers={"X-Target-Selector": "body", "Accept": "text/plain"},
            )
    except httpx.TimeoutException:
        raise PageFetchError("timeout", url=url)
    except httpx.RequestError as e:
        raise PageFetchError("network", f"Error de red: {e}", url=url)

    if resp.status_code in (401, 403):
        raise PageFetchError("access_denied", url=url)
    if resp.status_code == 404:
        raise PageFetchError("not_found", url=url)
    if resp.status_code >= 400:
        raise PageFetchError("http", f"Error HTTP {resp.status_code}: {resp.reason_phrase}", url=url)

    text = resp.text or ""
    if len(text) < MIN_CONTENT_LENGTH:
        raise PageFetchError("empty", url=url)
    return text


def find_link(markdown: str, selector: str) -> Optional[str]:
    """在 Markdown 内容中查找最匹配的链接：URL 本身 > 精确文本 > 部分文本。"""

    if not selector:
        return None
    if selector.startswith("http"):
        return selector
    if selector.startswith("www"):
        return f"https://{selector}"

    escaped = re.escape(selector)
    exact = re.search(rf"\[\s*{escaped}\s*\]\((.*?)\)", markdown, re.IGNORECASE)
    if exact and exact.group(1):
        return exact.group(1)
    partial = re.search(rf"\[.*{escaped}.*\]\((.*?)\)", markdown, re.IGNORECASE)
    if partial and partial.group(1):
        return partial.group(1)
    return None


def visible_links(markdown: str, limit: int = MAX_LINK_SUGGESTIONS) -> List[str]:
    labels: List[str] = []
    for match in _LINK_RE.finditer(markdown or ""):
        label = match.group(1)
        if label and len(label) > 3:
            labels.append(f'"{label}"')
            if len(labels) >= limit:
                break
    return labels


def build_search_url(current_url: str, query: str) -> str:
    """根据当前所在站点构造站内搜索 URL，未知站点回退为 Google site: 搜索。"""

    encoded = quote(query, safe="-_.!~*'()")
    if "google" in current_url:
        return f"https://www.google.com/search?q={encoded}"
    if "amazon" in current_url:
        return f"https://www.amazon.com/s?k={encoded}"
    if "youtube" in current_url:
        return f"https://www.youtube.com/results?search_query={encoded}"
    if "wikipedia" in current_url:
        return f"https://es.wikipedia.org/w/index.php?search={encoded}"
    domain = urlparse(current_url).hostname
    if domain:
        return f"https://www.google.com/search?q=site:{domain}+{encoded}"
    return f"https://www.google.com/search?q={encoded}"


def _event_for(args: BrowserActionArgs) -> BrowserActionEvent:
    if args.action == "NAVIGATE":
        return NavigateAction(url=args.value or "")
    if args.action == "CLICK":
        return ClickAction(target=args.target or "")
    if args.action == "TYPE":
        return TypeAction(text=args.value or "")
    return ScrollAction()


def _with_scheme(url: str) -> str:
    return url if url.startswith("http") else f"https://{url}"


class BrowserSession:
    """单个任务内的模拟浏览器会话，记录当前 URL 与页面内容。"""

    def __init__(
        self,
        on_action: Optional[BrowserActionCallback] = None,
        fetch: Callable[[str], str] = fetch_page,
        start_url: str = INITIAL_URL,
    ):
        self.current_url = start_url
        self.current_content = ""
        self._on_action = on_action
        self._fetch = fetch

    def perform(self, args: BrowserActionArgs) -> ToolResult:
        if self._on_action:
            self._on_action(_event_for(args))
        log_event(
            logging.INFO,
            "browser action",
            action=args.action,
            target=args.target,
            value=args.value,
            current_url=self.current_url,
        )
        try:
            if args.action == "NAVIGATE":
                return self._navigate(args)
            if args.action == "CLICK":
                return self._click(args)
            if args.action == "TYPE":
                return self._type(args)
            return self._result(True, "Scroll simulado. Continúa analizando el contenido actual.")
        except ToolExecutionError as e:
            return self._result(False, f"Error Crítico del Navegador: {e.message}")

    def scrape(self, args: WebScrapeArgs) -> ToolResult:
        """抓取指定 URL 的完整文本，不改变会话状态。"""

        url = _with_scheme(args.url)
        try:
            content = self._fetch(url)
        except PageFetchError as e:
            return ToolResult(
                call_id=None,
                name="web_scrape",
                success=False,
                data={"success": False, "message": f"Fallo al extraer {url}: {e.message}"},
            )
        return ToolResult(
            call_id=None,
            name="web_scrape",
            success=True,
            data={"success": True, "content": content[:SCRAPE_CONTENT_LIMIT]},
        )

    # ---- 各动作 ----

    def _navigate(self, args: BrowserActionArgs) -> ToolResult:
        if not args.value:
            raise ToolExecutionError(code="MISSING_VALUE", message="URL requerida para navegación.")
        target = _with_scheme(args.value)
        try:
            content = self._fetch(target)
        except PageFetchError as e:
            return self._result(
                False,
                f"Fallo al navegar: {e.message}. SUGERENCIA: Usa la acción 'TYPE' para buscar este sitio en Google en su lugar.",
            )
        return self._loaded(target, content, f"Navegación exitosa a {target}")

    def _click(self, args: BrowserActionArgs) -> ToolResult:
        if not args.target:
            raise ToolExecutionError(code="MISSING_TARGET", message="Objetivo (target) requerido para clic.")
        href = find_link(self.current_content, args.target)
        if not href:
            suggestions = ", ".join(visible_links(self.current_content))
            return self._result(
                False,
                f'No se encontró el enlace "{args.target}".\n'
                f"SUGERENCIA: Intenta con uno de estos enlaces visibles: {suggestions}.\n"
                "O usa 'TYPE' para buscar.",
            )
        absolute = urljoin(self.current_url, href)
        try:
            content = self._fetch(absolute)
        except PageFetchError as e:
            return self._result(
                False,
                f"El enlace fue encontrado pero falló la carga: {e.message}. Intenta buscar la información en otra fuente.",
            )
        return self._loaded(absolute, content, f'Clic en "{args.target}" exitoso. Página cargada: {absolute}')

    def _type(self, args: BrowserActionArgs) -> ToolResult:
        if not args.value:
            raise ToolExecutionError(code="MISSING_VALUE", message="Valor (value) requerido para escribir.")
        search_url = build_search_url(self.current_url, args.value)
        try:
            content = self._fetch(search_url)
        except PageFetchError as e:
            return self._result(
                False,
                f"Error al realizar la búsqueda: {e.message}. Intenta navegar directamente a Google.com.",
            )
        host = urlparse(search_url).hostname
        return self._loaded(search_url, content, f'Búsqueda "{args.value}" realizada con éxito en {host}.')

    # ---- 辅助方法 ----

    def _loaded(self, url: str, content: str, message: str) -> ToolResult:
        self.current_url = url
        self.current_content = content
        return self._result(True, message, content)

    def _result(self, success: bool, message: str, content: Optional[str] = None) -> ToolResult:
        return ToolResult(
            call_id=None,
            name="browser_action",
            success=success,
            data={
                "success": success,
                "message": message,
                "current_url": self.current_url,
                "page_content_snippet": content[:BROWSER_SNIPPET_LIMIT] if content else "No data",
            },
        )
