"""Records held in the local store: tasks, projects, labels, sections, the user."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

_LINK_RE = re.compile(r"\[(.*?)\]\((.*?)\)")

_TIMESTAMP_RE = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<zone>Z|[+-]\d{2}:\d{2})?)?"
)


def _json(key: str, default: Any = None, *, factory=None, nullable: bool = False, nested=None):
    metadata = {"json": key, "nullable": nullable, "nested": nested}
    if factory is not None:
        return field(default_factory=factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _link(*, default=None):
    return field(default=default, repr=False, compare=False)


def _load(cls, data: dict[str, Any]):
    """Build a record of `cls` from an API JSON object."""
    kwargs = {}
    for f in fields(cls):
        key = f.metadata.get("json")
        if key is None or key not in data:
            continue
        value = data[key]
        if value is None:
            if not f.metadata.get("nullable"):
                continue
        else:
            nested = f.metadata.get("nested")
            if nested is not None:
                value = nested.from_dict(value)
            else:
                value = copy.deepcopy(value)
        kwargs[f.name] = value
    return cls(**kwargs)


def _dump(record) -> dict[str, Any]:
    """Turn a record back into an API JSON object."""
    out: dict[str, Any] = {}
    for f in fields(record):
        key = f.metadata.get("json")
        if key is None:
            continue
        value = getattr(record, f.name)
        if f.metadata.get("nested") is not None and value is not None:
            value = value.to_dict()
        else:
            value = copy.deepcopy(value)
        out[key] = value
    return out


def _parse_timestamp(text: str, *, require_zone: bool) -> datetime | None:
    """Parse an API timestamp; naive values are taken as local time."""
    match = _TIMESTAMP_RE.fullmatch(text or "")
    if match is None:
        return None
    zone_text = match["zone"]
    if require_zone and (match["hour"] is None or zone_text is None):
        return None
    fraction = match["fraction"] or ""
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    try:
        if zone_text is None:
            tz = None
        elif zone_text == "Z":
            tz = timezone.utc
        else:
            sign = -1 if zone_text[0] == "-" else 1
            hours, minutes = int(zone_text[1:3]), int(zone_text[4:6])
            tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
        value = datetime(
            int(match["year"]),
            int(match["month"]),
            int(match["day"]),
            int(match["hour"] or 0),
            int(match["minute"] or 0),
            int(match["second"] or 0),
            microsecond,
            tzinfo=tz,
        )
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.astimezone()
    return value


@dataclass
class Due:
    """When a task is due."""

    date: str = _json("date", "")
    timezone: str = _json("timezone", "")
    is_recurring: bool = _json("is_recurring", False)
    string: str = _json("string", "")
    lang: str = _json("lang", "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Due:
        return _load(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)


@dataclass
class Item:
    """An open task."""

    id: str = _json("id", "")
    project_id: str = _json("project_id", "")
    content: str = _json("content", "")
    user_id: str = _json("user_id", "")
    parent_id: str | None = _json("parent_id", nullable=True)
    indent: int = _json("indent", 0)
    section_id: str = _json("section_id", "")
    all_day: bool = _json("all_day", False)
    assigned_by_uid: str = _json("assigned_by_uid", "")
    checked: bool = _json("checked", False)
    collapsed: bool = _json("collapsed", False)
    date_added: str = _json("added_at", "")
    date_lang: str = _json("date_lang", "")
    date_string: str = _json("date_string", "")
    day_order: int = _json("day_order", 0)
    due: Due | None = _json("due", nullable=True, nested=Due)
    has_more_notes: bool = _json("has_more_notes", False)
    is_archived: int = _json("is_archived", 0)
    is_deleted: bool = _json("is_deleted", False)
    item_order: int = _json("item_order", 0)
    label_names: list[str] = _json("labels", factory=list)
    priority: int = _json("priority", 0)
    auto_reminder: bool = _json("auto_reminder", False)
    responsible_uid: Any = _json("responsible_uid", nullable=True)
    sync_id: Any = _json("sync_id", nullable=True)
    child_item: Item | None = _link()
    brother_item: Item | None = _link()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        return _load(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)

    def date_time(self) -> datetime | None:
        """The due moment, or None when the task has no usable due date."""
        date = self.due.date if self.due is not None else ""
        return _parse_timestamp(date, require_zone=False)

    def add_param(self) -> dict[str, Any]:
        """Arguments of an item_add command."""
        param: dict[str, Any] = {}
        if self.content:
            param["content"] = self.content
        if self.date_string:
            param["date_string"] = self.date_string
        if self.label_names:
            param["labels"] = list(self.label_names)
        if self.priority != 0:
            param["priority"] = self.priority
        if self.project_id:
            param["project_id"] = self.project_id
        if self.due is not None:
            param["due"] = self.due.to_dict()
        if self.parent_id is not None:
            param["parent_id"] = self.parent_id
        param["auto_reminder"] = self.auto_reminder
        return param

    def update_param(self) -> dict[str, Any]:
        """Arguments of an item_update command."""
        param: dict[str, Any] = {}
        if self.id:
            param["id"] = self.id
        if self.content:
            param["content"] = self.content
        if self.date_string:
            param["date_string"] = "" if self.date_string == "null" else self.date_string
        if self.label_names:
            param["labels"] = list(self.label_names)
        if self.priority != 0:
            param["priority"] = self.priority
        if self.due is not None:
            param["due"] = self.due.to_dict()
        return param

    def move_param(self, project_id: str) -> dict[str, Any]:
        """Arguments of an item_move command."""
        return {"id": self.id, "project_id": project_id}

    def labels_string(self, store) -> str:
        """The task's labels as '@a,@b', resolved through the store."""
        rendered = []
        for name in self.label_names:
            label_id = label_id_by_name(store.labels, name)
            label = store.find_label(label_id) if label_id is not None else None
            if label is None:
                raise LookupError(f"label not found: {name}")
            rendered.append("@" + label.name)
        return ",".join(rendered)


@dataclass
class CompletedItem:
    """A task that has been completed."""

    id: str = _json("id", "")
    project_id: str = _json("project_id", "")
    content: str = _json("content", "")
    user_id: str = _json("user_id", "")
    completed_at: str = _json("completed_at", "")
    meta_data: Any = _json("meta_data", nullable=True)
    task_id: str = _json("task_id", "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompletedItem:
        return _load(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)

    @property
    def label_names(self) -> list[str]:
        return []

    def date_time(self) -> datetime | None:
        """The completion moment, or None when it cannot be read."""
        return _parse_timestamp(self.completed_at, require_zone=True)


@dataclass
class Label:
    """A personal label."""

    id: str = _json("id", "")
    color: str = _json("color", "")
    is_deleted: bool = _json("is_deleted", False)
    item_order: int = _json("item_order", 0)
    name: str = _json("name", "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Label:
        return _load(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)


@dataclass
class Project:
    """A project, possibly nested under another."""

    id: str = _json("id", "")
    parent_id: str | None = _json("parent_id", nullable=True)
    indent: int = _json("indent", 0)
    collapsed: bool = _json("collapsed", False)
    color: str = _json("color", "")
    has_more_notes: bool = _json("has_more_notes", False)
    inbox_project: bool = _json("inbox_project", False)
    is_archived: bool = _json("is_archived", False)
    is_deleted: bool = _json("is_deleted", False)
    item_order: int = _json("item_order", 0)
    name: str = _json("name", "")
    shared: bool = _json("shared", False)
    view_style: str = _json("view_style", "")
    child_project: Project | None = _link()
    brother_project: Project | None = _link()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return _load(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)

    def add_param(self) -> dict[str, Any]:
        """Arguments of a project_add command."""
        param: dict[str, Any] = {}
        if self.name:
            param["name"] = self.name
        if self.color:
            param["color"] = self.color
        if self.item_order != 0:
            param["child_order"] = self.item_order
        return param


@dataclass
class Section:
    """A section inside a project."""

    id: str = _json("id", "")
    project_id: str = _json("project_id", "")
    collapsed: bool = _json("collapsed", False)
    name: str = _json("name", "")
    is_archived: bool = _json("is_archived", False)
    is_deleted: bool = _json("is_deleted", False)
    section_order: int = _json("section_order", 0)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Section:
        return _load(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)


@dataclass
class User:
    """The account the store belongs to."""

    auto_reminder: int = _json("auto_reminder", 0)
    avatar_big: str = _json("avatar_big", "")
    avatar_medium: str = _json("avatar_medium", "")
    avatar_s640: str = _json("avatar_s640", "")
    avatar_small: str = _json("avatar_small", "")
    business_account_id: Any = _json("business_account_id", nullable=True)
    completed_count: int = _json("completed_count", 0)
    completed_today: int = _json("completed_today", 0)
    daily_goal: int = _json("daily_goal", 0)
    date_format: int = _json("date_format", 0)
    email: str = _json("email", "")
    features: dict[str, Any] = _json("features", factory=dict)
    full_name: str = _json("full_name", "")
    id: str = _json("id", "")
    image_id: str = _json("image_id", "")
    inbox_project_id: str = _json("inbox_project_id", "")
    is_biz_admin: bool = _json("is_biz_admin", False)
    is_premium: bool = _json("is_premium", False)
    join_date: str = _json("joined_at", "")
    karma: float = _json("karma", 0.0)
    karma_trend: str = _json("karma_trend", "")
    next_week: int = _json("next_week", 0)
    premium_until: str = _json("premium_until", "")
    sort_order: int = _json("sort_order", 0)
    start_day: int = _json("start_day", 0)
    start_page: str = _json("start_page", "")
    theme_id: str = _json("theme_id", "")
    time_format: int = _json("time_format", 0)
    token: str = _json("token", "")
    tz_info: dict[str, Any] = _json("tz_info", factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return _load(cls, data)

    def to_dict(self) -> dict[str, Any]:
        return _dump(self)


@dataclass(order=True)
class Order:
    """An ordering entry; entries sort by number."""

    num: int = 0
    id: int = field(default=0, compare=False)
    data: Any = field(default=None, compare=False, repr=False)


@dataclass
class ItemOrder(Order):
    """An ordering entry for a task within its project."""

    project_order: int = 0

    def sort_key(self) -> tuple[int, int]:
        """Sort by project order first, then by number."""
        return (self.project_order, self.num)


def label_id_by_name(labels: Iterable[Label], name: str) -> str | None:
    """The id of the first label with exactly this name, or None."""
    return next((label.id for label in labels if label.name == name), None)


def project_id_by_name(projects: Iterable[Project], name: str) -> str | None:
    """The id of the first project with exactly this name, or None."""
    return next((project.id for project in projects if project.name == name), None)


def project_ids_by_name(projects: list[Project], name: str, is_all: bool) -> list[str]:
    """Ids of projects whose name contains `name`, ignoring case.

    With `is_all`, each match is followed by its id again and by the ids of
    all its descendants.
    """
    needle = name.lower()
    ids: list[str] = []
    for project in projects:
        if needle in project.name.lower():
            ids.append(project.id)
            if is_all:
                ids.append(project.id)
                ids.extend(child_project_ids(project.id, projects))
    return ids


def child_project_ids(parent_id: str, projects: list[Project]) -> list[str]:
    """Ids of every descendant of the given project, depth first."""
    ids: list[str] = []
    for project in projects:
        if project.parent_id is not None and project.parent_id == parent_id:
            ids.append(project.id)
            ids.extend(child_project_ids(project.id, projects))
    return ids


def get_content_title(content: str) -> str:
    """Content with each markdown link replaced by its text."""
    return _LINK_RE.sub(r"\1", content)


def get_content_urls(content: str) -> list[str]:
    """Targets of the markdown links in content, in order."""
    return [match.group(2) for match in _LINK_RE.finditer(content)]


def has_url(content: str) -> bool:
    """Whether content holds a markdown link."""
    return _LINK_RE.search(content) is not None