"""Rendering of ids, priorities, projects, contents and dates for the terminal."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Callable

from .models import Item, get_content_title, has_url
from .store import Store, search_item_parents, search_project_parents

DEFAULT_DATETIME_FORMAT = "06/01/02(Mon) 15:04"
DEFAULT_DATE_FORMAT = "06/01/02(Mon)"

_ANSI_RE = re.compile(
    "[\u001b\u009b][[\\]()#;?]*(?:(?:(?:[a-zA-Z\\d]*(?:;[a-zA-Z\\d]*)*)?\u0007)"
    "|(?:(?:\\d{1,4}(?:;\\d{0,4})*)?[\\dA-PRZcf-ntqry=><~]))"
)


class Attribute(IntEnum):
    """Terminal display attributes (SGR parameters)."""

    RESET = 0
    BOLD = 1
    UNDERLINE = 4
    FG_BLUE = 34
    FG_CYAN = 36
    FG_WHITE = 37
    BG_BLACK = 40
    BG_RED = 41
    FG_HI_RED = 91
    FG_HI_GREEN = 92
    FG_HI_YELLOW = 93
    FG_HI_BLUE = 94
    FG_HI_MAGENTA = 95
    FG_HI_CYAN = 96


@dataclass
class _Settings:
    color: bool = False
    date_format: str = DEFAULT_DATE_FORMAT
    datetime_format: str = DEFAULT_DATETIME_FORMAT


_settings = _Settings()


def set_color_enabled(enabled: bool) -> None:
    """Turn colored output on or off."""
    _settings.color = bool(enabled)


def set_date_formats(date_format: str, datetime_format: str) -> None:
    """Replace the date and date-time layouts; empty values keep the current ones."""
    if date_format:
        _settings.date_format = date_format
    if datetime_format:
        _settings.datetime_format = datetime_format


def _colorize(text: str, *attributes: int) -> str:
    if not _settings.color:
        return text
    params = ";".join(str(int(attribute)) for attribute in attributes)
    return f"\x1b[{params}m{text}\x1b[0m"


def strip_ansi(text: str) -> str:
    """Text with terminal escape sequences removed."""
    return _ANSI_RE.sub("", text)


_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _offset(value: datetime, *, colon: bool, zulu: bool) -> str:
    offset = value.utcoffset() or timedelta(0)
    if zulu and offset == timedelta(0):
        return "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    hours, minutes = divmod(minutes, 60)
    return f"{sign}{hours:02d}:{minutes:02d}" if colon else f"{sign}{hours:02d}{minutes:02d}"


def _hour12(value: datetime) -> int:
    return value.hour % 12 or 12


# Layout tokens in matching order, with their strftime directive and renderer.
_LAYOUT_TOKENS: tuple[tuple[str, str, Callable[[datetime], str]], ...] = (
    ("January", "%B", lambda d: _MONTHS[d.month - 1]),
    ("Jan", "%b", lambda d: _MONTHS[d.month - 1][:3]),
    ("Monday", "%A", lambda d: _DAYS[d.weekday()]),
    ("Mon", "%a", lambda d: _DAYS[d.weekday()][:3]),
    ("MST", "%Z", lambda d: d.tzname() or ""),
    ("Z07:00", "%z", lambda d: _offset(d, colon=True, zulu=True)),
    ("Z0700", "%z", lambda d: _offset(d, colon=False, zulu=True)),
    ("-07:00", "%:z", lambda d: _offset(d, colon=True, zulu=False)),
    ("-0700", "%z", lambda d: _offset(d, colon=False, zulu=False)),
    ("2006", "%Y", lambda d: f"{d.year:04d}"),
    ("_2006", "_%Y", lambda d: f"_{d.year:04d}"),
    ("002", "%j", lambda d: f"{d.timetuple().tm_yday:03d}"),
    ("01", "%m", lambda d: f"{d.month:02d}"),
    ("02", "%d", lambda d: f"{d.day:02d}"),
    ("03", "%I", lambda d: f"{_hour12(d):02d}"),
    ("04", "%M", lambda d: f"{d.minute:02d}"),
    ("05", "%S", lambda d: f"{d.second:02d}"),
    ("06", "%y", lambda d: f"{d.year % 100:02d}"),
    ("_2", "%e", lambda d: f"{d.day:2d}"),
    ("15", "%H", lambda d: f"{d.hour:02d}"),
    ("1", "%-m", lambda d: str(d.month)),
    ("2", "%-d", lambda d: str(d.day)),
    ("3", "%-I", lambda d: str(_hour12(d))),
    ("4", "%-M", lambda d: str(d.minute)),
    ("5", "%-S", lambda d: str(d.second)),
    ("PM", "%p", lambda d: "PM" if d.hour >= 12 else "AM"),
    ("pm", "%P", lambda d: "pm" if d.hour >= 12 else "am"),
)


def _tokenize(layout: str):
    """Split a reference-time layout into literal text and token entries."""
    parts: list[tuple[str, tuple[str, str, Callable[[datetime], str]] | None]] = []
    literal: list[str] = []
    pos = 0
    while pos < len(layout):
        entry = next((t for t in _LAYOUT_TOKENS if layout.startswith(t[0], pos)), None)
        if entry is None:
            literal.append(layout[pos])
            pos += 1
            continue
        if literal:
            parts.append(("".join(literal), None))
            literal = []
        parts.append((entry[0], entry))
        pos += len(entry[0])
    if literal:
        parts.append(("".join(literal), None))
    return parts


def go_layout_to_strftime(layout: str) -> str:
    """The nearest strftime pattern for a reference-time layout."""
    return "".join(
        text.replace("%", "%%") if entry is None else entry[1]
        for text, entry in _tokenize(layout)
    )


def _format_time(value: datetime, layout: str) -> str:
    return "".join(
        text if entry is None else entry[2](value) for text, entry in _tokenize(layout)
    )


def color_list() -> list[Attribute]:
    """Colors handed out to projects, in turn."""
    return [
        Attribute.FG_HI_RED,
        Attribute.FG_HI_GREEN,
        Attribute.FG_HI_YELLOW,
        Attribute.FG_HI_BLUE,
        Attribute.FG_HI_MAGENTA,
        Attribute.FG_HI_CYAN,
    ]


def generate_color_hash(ids, colors) -> dict[str, Attribute]:
    """Give each distinct id the next color, cycling through the list."""
    palette = list(colors)
    color_hash: dict[str, Attribute] = {}
    for identifier in ids:
        if identifier not in color_hash:
            color_hash[identifier] = palette[len(color_hash) % len(palette)]
    return color_hash


def id_format(carrier_id: str) -> str:
    return _colorize(carrier_id, Attribute.FG_BLUE)


def content_prefix(store: Store, item: Item, depth: int, indent: bool, namespace: bool) -> str:
    """Indentation and parent names put before a task's content."""
    prefix = ""
    if indent:
        prefix += "    " * depth
    if namespace:
        prefix += "".join(parent.content + ":" for parent in search_item_parents(store, item))
    return prefix


def content_format(content: str) -> str:
    """Content with links reduced to their text, underlined when it holds a link."""
    title = get_content_title(content)
    if has_url(content):
        return _colorize(title, Attribute.UNDERLINE)
    return title


_PRIORITY_STYLES = {
    1: (4, Attribute.FG_BLUE, Attribute.BG_BLACK),
    2: (3, Attribute.FG_HI_YELLOW, Attribute.BG_BLACK),
    3: (2, Attribute.FG_HI_RED, Attribute.BG_BLACK),
    4: (1, Attribute.FG_WHITE, Attribute.BG_RED),
}


def priority_format(priority: int) -> str:
    """The API priority shown as the p1..p4 a user writes."""
    style = _PRIORITY_STYLES.get(priority)
    if style is None:
        return _colorize("p0", Attribute.BOLD)
    shown, foreground, background = style
    return _colorize(f"p{shown}", Attribute.BOLD, foreground, background)


def project_format(project_id: str, store: Store, color_hash, project_namespace: bool) -> str:
    """A project as '#name', optionally with its parents, in its color."""
    project = store.find_project(project_id)
    if project is None:
        return _colorize("Unknown", Attribute.FG_CYAN)
    name_prefix = ""
    if project_namespace:
        name_prefix = "".join(p.name + ":" for p in search_project_parents(store, project))
    color = color_hash.get(project.id, Attribute.RESET)
    return _colorize("#" + name_prefix + project.name, color)


def section_format(section_id: str, store: Store) -> str:
    """'/name' of the section, or an empty string."""
    section = store.find_section(section_id)
    return "" if section is None else "/" + section.name


def _local(value: datetime) -> datetime:
    return value.astimezone()


def _due_date_string(due_date: datetime | None, all_day: bool) -> str:
    if due_date is None:
        return ""
    layout = _settings.date_format if all_day else _settings.datetime_format
    return _format_time(_local(due_date), layout)


def due_date_format(due_date: datetime | None, all_day: bool) -> str:
    """A due date, colored by how close or past it is."""
    text = _due_date_string(due_date, all_day)
    if due_date is None:
        return _colorize(text, Attribute.BOLD, Attribute.FG_WHITE, Attribute.BG_RED)
    now = datetime.now(timezone.utc) if due_date.tzinfo is not None else datetime.now()
    elapsed = now - due_date
    if elapsed > timedelta(0):
        attrs = (Attribute.FG_WHITE, Attribute.BG_RED)
    elif elapsed > -timedelta(hours=12):
        attrs = (Attribute.FG_HI_RED, Attribute.BG_BLACK)
    elif elapsed > -timedelta(hours=24):
        attrs = (Attribute.FG_HI_YELLOW, Attribute.BG_BLACK)
    else:
        attrs = (Attribute.FG_HI_BLUE, Attribute.BG_BLACK)
    return _colorize(text, Attribute.BOLD, *attrs)


def completed_date_format(completed_date: datetime | None) -> str:
    """A completion moment in local time, or an empty string."""
    if completed_date is None:
        return ""
    return _format_time(_local(completed_date), _settings.datetime_format)