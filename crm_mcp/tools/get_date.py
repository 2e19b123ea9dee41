"""
getDate - current date and time, optionally formatted.

Format tokens are replaced literally, in this order: yyyy, MM, dd, HH, mm, ss.
Anything else in the format string is kept as is.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

JST = ZoneInfo("Asia/Tokyo")


def format_date(moment: datetime, fmt: str) -> str:
    return (
        fmt.replace("yyyy", f"{moment.year:04d}")
        .replace("MM", f"{moment.month:02d}")
        .replace("dd", f"{moment.day:02d}")
        .replace("HH", f"{moment.hour:02d}")
        .replace("mm", f"{moment.minute:02d}")
        .replace("ss", f"{moment.second:02d}")
    )


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """IANA zone by name; UTC when no name is configured."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (KeyError, ValueError) as e:
        raise ToolError(f"Unknown timezone: {name}") from e


def current_date_text(
    fmt: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    default_format: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Result text of the getDate tool.

    Without a format, default_format is used; without either the time is
    rendered as ISO-8601, with a "Z" suffix in UTC.
    """
    moment = (now or datetime.now(timezone.utc)).astimezone(tz or timezone.utc)
    pattern = fmt or default_format
    if pattern:
        value = format_date(moment, pattern)
    else:
        value = moment.isoformat(timespec="milliseconds")
        if moment.utcoffset() == timedelta(0):
            value = value[: -len("+00:00")] + "Z"
    return f"Tool: getDate, Result: {value}"


def register_get_date_tool(
    server: FastMCP,
    tz: Optional[tzinfo] = None,
    default_format: Optional[str] = None,
) -> None:
    @server.tool(
        name="getDate",
        description="Return the current date and time. Optional format, e.g. yyyy/MM/dd HH:mm:ss",
    )
    def get_date(format: Optional[str] = None) -> str:
        return current_date_text(format, tz=tz, default_format=default_format)
