"""The actions behind each command: add, list, modify, close and the rest."""

from __future__ import annotations

import contextlib
import math
import sys
from dataclasses import dataclass
from decimal import Decimal
from os import PathLike
from typing import Callable, Iterator, Sequence, Union

import requests

from .cache import write_cache
from .client import ApiError, Client
from .errors import CommandFailed, IdNotFound
from .format import (
    color_list,
    completed_date_format,
    content_format,
    content_prefix,
    due_date_format,
    generate_color_hash,
    id_format,
    priority_format,
    project_format,
    section_format,
    strip_ansi,
)
from .models import Due, Item, Label, Project, get_content_urls, has_url, project_id_by_name
from .output import CsvWriter, TableWriter
from .store import Store

# The priority a user writes (p1 is the most urgent) against the API's value.
PRIORITY_MAPPING = {1: 4, 2: 3, 3: 2, 4: 1}

ItemFilter = Callable[[object, Sequence[Project], Sequence[Label]], bool]


@dataclass
class Context:
    """What every command runs with: the client, the output and display options."""

    client: Client
    writer: Union[TableWriter, CsvWriter]
    cache_path: Union[str, PathLike]
    header: bool = False
    indent: bool = False
    namespace: bool = False
    project_namespace: bool = False
    item_filter: ItemFilter | None = None
    browse: bool = False
    open_url: Callable[[str], object] | None = None

    @property
    def store(self) -> Store:
        return self.client.store

    def matches(self, item) -> bool:
        """Whether the item passes the filter; everything passes without one."""
        if self.item_filter is None:
            return True
        return bool(self.item_filter(item, self.store.projects, self.store.labels))

    def project_colors(self):
        return generate_color_hash([p.id for p in self.store.projects], color_list())


def parse_label_names(text: str) -> list[str]:
    """Comma-separated label names, trimmed, with empty entries dropped."""
    return [name.strip() for name in text.split(",") if name.strip()]


def traverse_items(item: Item | None, depth: int = 0) -> Iterator[tuple[Item, int]]:
    """Walk a task tree depth first, yielding each task with its depth."""
    stack = [(item, depth)] if item is not None else []
    while stack:
        node, level = stack.pop()
        yield node, level
        if node.brother_item is not None:
            stack.append((node.brother_item, level))
        if node.child_item is not None:
            stack.append((node.child_item, level + 1))


def traverse_projects(project: Project | None, depth: int = 0) -> Iterator[tuple[Project, int]]:
    """Walk a project tree depth first, yielding each project with its depth."""
    stack = [(project, depth)] if project is not None else []
    while stack:
        node, level = stack.pop()
        yield node, level
        if node.brother_project is not None:
            stack.append((node.brother_project, level))
        if node.child_project is not None:
            stack.append((node.child_project, level + 1))


def sort_rows(rows: list[list[str]], index: int) -> list[list[str]]:
    """Rows stably sorted by one column, ignoring terminal colors."""
    return sorted(rows, key=lambda row: strip_ansi(row[index]))


def _format_number(value: float) -> str:
    """A number the way a shortest general float format prints it."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "0"
    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    point = len(digits) + exponent
    exp10 = point - 1
    prefix = "-" if sign else ""
    if exp10 < -4 or exp10 >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        exp_sign = "+" if exp10 >= 0 else "-"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp10):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return prefix + digits + "0" * (point - len(digits))
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def sync(ctx: Context) -> None:
    """Fetch everything from the service and save it to the cache."""
    store = ctx.client.sync()
    write_cache(ctx.cache_path, store)


def add(
    ctx: Context,
    content: str,
    priority: int = 4,
    label_names: str = "",
    project_id: str | None = None,
    project_name: str = "",
    date: str = "",
    reminder: bool = False,
    parent_id: str = "",
) -> None:
    """Add a task, then sync."""
    item = Item(content=content, priority=PRIORITY_MAPPING.get(priority, 0))
    if project_name:
        found = project_id_by_name(ctx.store.projects, project_name)
        if not found:
            raise CommandFailed(f"Did not find a project named '{project_name}'")
        item.project_id = found
    elif project_id is not None:
        item.project_id = str(project_id)
    item.label_names = parse_label_names(label_names)
    item.due = Due(string=date)
    item.auto_reminder = reminder
    if parent_id:
        item.parent_id = parent_id
    ctx.client.add_item(item)
    sync(ctx)


def add_project(ctx: Context, name: str, color: int = 0, item_order: int = 0) -> None:
    """Add a project, then sync."""
    if not name:
        raise CommandFailed()
    project = Project(name=name, item_order=item_order)
    if str(color) != "0":
        project.color = str(color)
    ctx.client.add_project(project)
    sync(ctx)


def close(ctx: Context, item_ids: Sequence[str]) -> None:
    """Close the given tasks, then sync."""
    ids = list(item_ids)
    if not ids:
        raise CommandFailed()
    ctx.client.close_items(ids)
    sync(ctx)


def delete(ctx: Context, item_ids: Sequence[str]) -> None:
    """Delete the tasks whose ids start with the given prefixes, then sync."""
    ids = [ctx.client.complete_item_id_by_prefix(prefix) for prefix in item_ids]
    if not ids:
        raise CommandFailed()
    try:
        ctx.client.delete_items(ids)
    except (ApiError, requests.RequestException) as err:
        raise CommandFailed() from err
    sync(ctx)


def completed_list(ctx: Context) -> None:
    """Write the completed tasks that pass the filter."""
    colors = ctx.project_colors()
    completed = ctx.client.completed_all()
    try:
        if ctx.header:
            ctx.writer.write(["ID", "CompletedDate", "Project", "Content"])
        for item in completed:
            if not ctx.matches(item):
                continue
            ctx.writer.write(
                [
                    id_format(item.id),
                    completed_date_format(item.date_time()),
                    project_format(item.project_id, ctx.store, colors, ctx.project_namespace),
                    content_format(item.content),
                ]
            )
    finally:
        ctx.writer.flush()


def karma(ctx: Context) -> None:
    """Print the user's karma."""
    print(_format_number(ctx.store.user.karma))


def labels(ctx: Context) -> None:
    """Write every label."""
    try:
        if ctx.header:
            ctx.writer.write(["ID", "Name"])
        for label in ctx.store.labels:
            ctx.writer.write([id_format(label.id), "@" + label.name])
    finally:
        ctx.writer.flush()


def list_items(ctx: Context, sort_priority: bool = False) -> None:
    """Write the open tasks that pass the filter, in tree order or by priority."""
    store = ctx.store
    colors = ctx.project_colors()
    if store.root_item is None:
        print("There is no task. You can fetch latest tasks by running sync.", file=sys.stderr)
        return
    rows: list[list[str]] = []
    for item, depth in traverse_items(store.root_item):
        if not ctx.matches(item) or item.checked:
            continue
        rows.append(
            [
                id_format(item.id),
                priority_format(item.priority),
                due_date_format(item.date_time(), item.all_day),
                project_format(item.project_id, store, colors, ctx.project_namespace)
                + section_format(item.section_id, store),
                item.labels_string(store),
                content_prefix(store, item, depth, ctx.indent, ctx.namespace)
                + content_format(item.content),
            ]
        )
    if sort_priority:
        rows = sort_rows(rows, 1)
    try:
        if ctx.header:
            ctx.writer.write(["ID", "Priority", "DueDate", "Project", "Labels", "Content"])
        for row in rows:
            ctx.writer.write(row)
    finally:
        ctx.writer.flush()


def modify(
    ctx: Context,
    item_id: str,
    content: str = "",
    priority: int = 4,
    label_names: str = "",
    project_id: str | None = None,
    project_name: str = "",
    date: str = "",
) -> None:
    """Update a task and move it to a project, then sync."""
    if not item_id:
        raise CommandFailed()
    resolved = ctx.client.complete_item_id_by_prefix(item_id)
    item = ctx.store.find_item(resolved)
    if item is None:
        raise IdNotFound()
    item.content = content
    item.priority = PRIORITY_MAPPING.get(priority, 0)
    item.label_names = label_names.split(",")
    item.due = Due(string=date)
    target = str(project_id) if project_id else ""
    if not target:
        target = project_id_by_name(ctx.store.projects, project_name) or ""
    ctx.client.update_item(item)
    ctx.client.move_item(item, target)
    sync(ctx)


def projects(ctx: Context) -> None:
    """Write every project in tree order."""
    store = ctx.store
    colors = ctx.project_colors()
    rows = [
        [id_format(project.id), project_format(project.id, store, colors, ctx.project_namespace)]
        for project, _ in traverse_projects(store.root_project)
    ]
    try:
        if ctx.header:
            ctx.writer.write(["ID", "Name"])
        for row in rows:
            ctx.writer.write(row)
    finally:
        ctx.writer.flush()


def quick(ctx: Context, text: str) -> None:
    """Add a task from free text, then sync."""
    if not text:
        raise CommandFailed()
    with contextlib.suppress(ApiError, requests.RequestException):
        ctx.client.quick_add(text)
    sync(ctx)


def show(ctx: Context, item_id: str) -> None:
    """Write the details of one task, opening its links when asked to."""
    store = ctx.store
    item = store.find_item(item_id)
    if item is None:
        raise IdNotFound()
    colors = ctx.project_colors()
    urls = get_content_urls(item.content)
    records = [
        ["ID", id_format(item.id)],
        ["Content", content_format(item.content)],
        ["Project", project_format(item.project_id, store, colors, ctx.project_namespace)],
        ["Labels", item.labels_string(store)],
        ["Priority", priority_format(item.priority)],
        ["DueDate", due_date_format(item.date_time(), item.all_day)],
        ["URL", ",".join(urls)],
    ]
    try:
        for record in records:
            ctx.writer.write(record)
    finally:
        ctx.writer.flush()
    if has_url(item.content) and ctx.browse and ctx.open_url is not None:
        for url in urls:
            ctx.open_url(url)