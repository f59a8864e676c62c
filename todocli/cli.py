"""Command-line entry point: option parsing, settings and start-up."""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence, TextIO

import requests

from . import commands
from .cache import load_cache
from .client import ApiError, Client, Config
from .errors import CommandFailed, IdNotFound
from .format import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_DATETIME_FORMAT,
    set_color_enabled,
    set_date_formats,
)
from .output import CsvWriter, TableWriter, assure_exists, exists

CONFIG_NAME = "config.json"
ENV_PREFIX = "TODOIST_"

_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_HANDLED_ERRORS = (
    CommandFailed,
    IdNotFound,
    ApiError,
    requests.RequestException,
    OSError,
    LookupError,
    ValueError,
)


def config_dir() -> Path:
    """Directory holding the settings file."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "todoist"


def cache_file() -> Path:
    """Path of the local store cache."""
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / "todoist" / "cache.json"


def load_settings(config_file, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Settings from the JSON config file, overridden by TODOIST_* variables.

    Keys are lower case. A missing file gives no settings of its own; an
    unreadable one raises CommandFailed.
    """
    environ = os.environ if environ is None else environ
    settings: dict[str, Any] = {}
    if config_file is not None:
        path = Path(config_file)
        if path.is_file():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as err:
                raise CommandFailed(f"Couldn't read config file {path}: {err}") from err
            if not isinstance(data, dict):
                raise CommandFailed(f"Couldn't read config file {path}: not a JSON object")
            settings.update({str(key).lower(): value for key, value in data.items()})
    for name, value in environ.items():
        if name.startswith(ENV_PREFIX) and len(name) > len(ENV_PREFIX):
            settings[name[len(ENV_PREFIX):].lower()] = value
    return settings


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value in _TRUE_WORDS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def _find_config_file(primary: Path) -> Path | None:
    for candidate in (primary, Path.cwd() / CONFIG_NAME):
        if candidate.is_file():
            return candidate
    return None


def _prompt_token(stdin: TextIO, stdout: TextIO) -> str:
    stdout.write("Input API Token: ")
    stdout.flush()
    words = stdin.readline().split()
    return words[0] if words else ""


def _write_config(path: Path, settings: dict[str, Any]) -> None:
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(settings, handle, indent=2)
    except OSError as err:
        raise CommandFailed(f"Fatal error config file: {err}") from err


def _check_permissions(path: Path) -> None:
    if os.name == "nt":
        return
    try:
        mode = os.lstat(path).st_mode & 0o777
    except OSError as err:
        raise CommandFailed(f"Fatal error config file: {err}") from err
    if mode != 0o600:
        raise CommandFailed(
            "Config file has wrong permissions. "
            f"Make sure to give permissions 600 to file {path}"
        )


def _announce_url(url: str) -> None:
    """Report a link to open; the user's own browser takes it from here."""
    print(f"Open: {url}", file=sys.stderr)


def _start(args: argparse.Namespace) -> commands.Context:
    """Load the cache and settings, and build the context commands run with."""
    cache_path = cache_file()
    store = load_cache(cache_path)

    config_file = config_dir() / CONFIG_NAME
    assure_exists(config_file)
    found = _find_config_file(config_file)
    settings = load_settings(found, os.environ)
    if found is None and "token" not in settings:
        token = _prompt_token(sys.stdin, sys.stdout)
        settings["token"] = token
        _write_config(config_file, {"token": token})
    if exists(config_file):
        _check_permissions(config_file)

    config = Config(
        access_token=_as_str(settings.get("token")),
        debug_mode=args.debug,
        color=_as_bool(settings.get("color")),
        date_format=_as_str(settings.get("shortdateformat")),
        datetime_format=_as_str(settings.get("shortdatetimeformat")),
    )
    if config.debug_mode:
        logging.basicConfig(level=logging.DEBUG)

    writer = CsvWriter(sys.stdout) if args.csv else TableWriter(sys.stdout)
    client = Client(config, store)
    ctx = commands.Context(
        client=client,
        writer=writer,
        cache_path=cache_path,
        header=args.header,
        indent=args.indent,
        namespace=args.namespace,
        project_namespace=args.project_namespace,
        browse=getattr(args, "browse", False),
        open_url=_announce_url,
    )

    if config.access_token != store.user.token:
        with contextlib.suppress(*_HANDLED_ERRORS):
            commands.sync(ctx)
        client.store = load_cache(cache_path)

    set_color_enabled(args.color or config.color)
    set_date_formats(
        config.date_format or DEFAULT_DATE_FORMAT,
        config.datetime_format or DEFAULT_DATETIME_FORMAT,
    )
    return ctx


def _first(args: argparse.Namespace) -> str:
    return args.arguments[0] if args.arguments else ""


def _optional_id(value: int | None) -> str | None:
    return None if value is None else str(value)


def _run_list(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.list_items(ctx, sort_priority=args.sort_priority)


def _run_show(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.show(ctx, _first(args))


def _run_completed(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.completed_list(ctx)


def _run_add(ctx: commands.Context, args: argparse.Namespace) -> None:
    if len(args.arguments) != 1:
        raise CommandFailed(
            "add command requires 1 positional argument for the task title, "
            f"but got {len(args.arguments)}."
        )
    commands.add(
        ctx,
        args.arguments[0],
        priority=args.priority,
        label_names=args.label_names,
        project_id=_optional_id(args.project_id),
        project_name=args.project_name,
        date=args.date,
        reminder=args.reminder,
        parent_id=args.parent_id,
    )


def _run_modify(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.modify(
        ctx,
        _first(args),
        content=args.content,
        priority=args.priority,
        label_names=args.label_names,
        project_id=_optional_id(args.project_id),
        project_name=args.project_name,
        date=args.date,
    )


def _run_close(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.close(ctx, args.arguments)


def _run_delete(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.delete(ctx, args.arguments)


def _run_labels(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.labels(ctx)


def _run_projects(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.projects(ctx)


def _run_add_project(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.add_project(ctx, _first(args), color=args.color_code, item_order=args.item_order)


def _run_karma(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.karma(ctx)


def _run_sync(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.sync(ctx)


def _run_quick(ctx: commands.Context, args: argparse.Namespace) -> None:
    commands.quick(ctx, _first(args))


def _add_task_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--priority", type=int, default=4, help="priority (1-4)")
    parser.add_argument(
        "-L", "--label-names", default="", help="label names (separated by ,)"
    )
    parser.add_argument("-P", "--project-id", type=int, default=None, help="project id")
    parser.add_argument("-N", "--project-name", default="", help="project name")
    parser.add_argument(
        "-d", "--date", default="", help="date string (today, 2020/04/02, 2020/03/21 18:00)"
    )


def build_parser() -> argparse.ArgumentParser:
    """The argument parser with every global option and command."""
    parser = argparse.ArgumentParser(prog="todocli", description="Task list client")
    parser.add_argument("--header", action="store_true", help="output with header")
    parser.add_argument("--color", action="store_true", help="colorize output")
    parser.add_argument("--csv", action="store_true", help="output in CSV format")
    parser.add_argument("--debug", action="store_true", help="output logs")
    parser.add_argument(
        "--namespace", action="store_true", help="display parent task like namespace"
    )
    parser.add_argument(
        "--indent", action="store_true", help="display children task with indent"
    )
    parser.add_argument(
        "--project-namespace",
        action="store_true",
        help="display parent project like namespace",
    )
    sub = parser.add_subparsers(dest="command", metavar="command")

    cmd = sub.add_parser("list", aliases=["l"], help="Show all tasks")
    cmd.add_argument(
        "-p", "--priority", dest="sort_priority", action="store_true",
        help="sort the output by priority",
    )
    cmd.set_defaults(handler=_run_list)

    cmd = sub.add_parser("show", help="Show task detail")
    cmd.add_argument("arguments", nargs="*", metavar="ITEM_ID")
    cmd.add_argument("-o", "--browse", action="store_true", help="when contain URL, open it")
    cmd.set_defaults(handler=_run_show)

    cmd = sub.add_parser(
        "completed-list", aliases=["c-l", "cl"],
        help="Show all completed tasks (only premium user)",
    )
    cmd.set_defaults(handler=_run_completed)

    cmd = sub.add_parser("add", aliases=["a"], help="Add task")
    cmd.add_argument("arguments", nargs="*", metavar="CONTENT")
    _add_task_options(cmd)
    cmd.add_argument(
        "-r", "--reminder", action="store_true", help="set reminder (only premium users)"
    )
    cmd.add_argument(
        "--parent-id", "--parent", dest="parent_id", default="",
        help="parent task id (creates subtask)",
    )
    cmd.set_defaults(handler=_run_add)

    cmd = sub.add_parser("modify", aliases=["m"], help="Modify task")
    cmd.add_argument("arguments", nargs="*", metavar="ITEM_ID")
    cmd.add_argument("-c", "--content", default="", help="content")
    _add_task_options(cmd)
    cmd.set_defaults(handler=_run_modify)

    cmd = sub.add_parser("close", aliases=["c"], help="Close task")
    cmd.add_argument("arguments", nargs="*", metavar="ITEM_ID")
    cmd.set_defaults(handler=_run_close)

    cmd = sub.add_parser("delete", aliases=["d"], help="Delete task")
    cmd.add_argument("arguments", nargs="*", metavar="ITEM_ID")
    cmd.set_defaults(handler=_run_delete)

    cmd = sub.add_parser("labels", help="Show all labels")
    cmd.set_defaults(handler=_run_labels)

    cmd = sub.add_parser("projects", help="Show all projects")
    cmd.set_defaults(handler=_run_projects)

    cmd = sub.add_parser("add-project", aliases=["ap"], help="Add new project")
    cmd.add_argument("arguments", nargs="*", metavar="NAME")
    cmd.add_argument("--color", dest="color_code", type=int, default=0, help="In range 30-49")
    cmd.add_argument("--item-order", type=int, default=0, help="Order index")
    cmd.set_defaults(handler=_run_add_project)

    cmd = sub.add_parser("karma", help="Show karma")
    cmd.set_defaults(handler=_run_karma)

    cmd = sub.add_parser("sync", aliases=["s"], help="Sync cache")
    cmd.set_defaults(handler=_run_sync)

    cmd = sub.add_parser("quick", aliases=["q"], help="Quick add a task")
    cmd.add_argument("arguments", nargs="*", metavar="TEXT")
    cmd.set_defaults(handler=_run_quick)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run one command; returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    try:
        ctx = _start(args)
        args.handler(ctx, args)
    except _HANDLED_ERRORS as err:
        print("Error:", err, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())