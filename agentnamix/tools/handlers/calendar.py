"""Google Calendar 链接生成。

不走 OAuth，直接生成预填好的 TEMPLATE 链接，由用户点击保存事件。
"""

from datetime import datetime, timezone
from urllib.parse import urlencode

from agentnamix.tools.definitions import ToolResult
from agentnamix.tools.schemas import CalendarEventArgs


CALENDAR_RENDER_URL = "https://calendar.google.com/calendar/render"


def format_calendar_date(value: str) -> str:
    """转换为 YYYYMMDDTHHMMSSZ（UTC），无法解析时返回空字符串。

    不带时区的时间按 UTC 处理。
    """

    text = (value or "").strip()
    if not text:
        return ""
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def build_calendar_link(event: CalendarEventArgs) -> str:
    start = format_calendar_date(event.start_time)
    end = format_calendar_date(event.end_time)
    params = [("action", "TEMPLATE"), ("text", event.title)]
    if start and end:
        params.append(("dates", f"{start}/{end}"))
    params.append(("details", event.description))
    if event.location:
        params.append(("location", event.location))
    return f"{CALENDAR_RENDER_URL}?{urlencode(params)}"


def schedule_event(args: CalendarEventArgs) -> ToolResult:
    link = build_calendar_link(args)
    lines = [
        f"> 📅 **Evento Programado**: {args.title}",
        f"> {args.start_time} - {args.end_time}",
    ]
    if args.location:
        lines.append(f"> 📍 {args.location}")
    if args.description:
        lines.append(f"> _{args.description}_")
    lines.append(f"> [Agregar a Google Calendar]({link})")
    return ToolResult(
        call_id=None,
        name="google_calendar",
        success=True,
        data={"success": True, "message": "Evento creado. Widget generado.", "link": link},
        markup="\n".join(lines),
    )
