"""Client for the task service's sync API."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Iterable

import requests

from .models import CompletedItem, Item, Project
from .store import Store

SERVER = "https://todoist.com/API/v9/"

_log = logging.getLogger(__name__)


@dataclass
class Config:
    """Settings the client and the commands run with."""

    access_token: str = ""
    debug_mode: bool = False
    color: bool = False
    date_format: str = ""
    datetime_format: str = ""


@dataclass
class Command:
    """One write command of the sync API."""

    args: Any
    temp_id: str
    type: str
    uuid: str


class ApiError(Exception):
    """The API answered with a status other than 200."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def new_command(command_type: str, args: Any) -> Command:
    """A command with fresh random uuid and temporary id."""
    return Command(
        args=args,
        temp_id=str(uuid.uuid4()),
        type=command_type,
        uuid=str(uuid.uuid4()),
    )


def commands_form(commands: Iterable[Command]) -> dict[str, str]:
    """Form fields carrying a batch of commands."""
    payload = [asdict(command) for command in commands]
    return {"commands": json.dumps(payload, separators=(",", ":"))}


def parse_api_error(prefix: str, response: requests.Response) -> ApiError:
    """An error describing a failed response, with the API's message if any."""
    message = f"{prefix}: {response.status_code} {response.reason}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, str) and error:
            message = f"{message}: {error}"
    return ApiError(message, response.status_code)


class Client:
    """Talks to the API and keeps the synced store."""

    def __init__(self, config: Config, store: Store | None = None) -> None:
        self.config = config
        self.store = store if store is not None else Store()
        self.session = requests.Session()

    def _debug(self, message: str, *args: Any) -> None:
        if self.config.debug_mode:
            _log.debug(message, *args)

    def _do_api(self, method: str, uri: str, params: dict[str, str]) -> Any:
        url = SERVER + uri
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": "Bearer " + self.config.access_token,
        }
        self._debug("request: %s %s", method, url)
        if method == "GET":
            response = self.session.request(method, url, params=params, headers=headers)
        else:
            response = self.session.request(method, url, data=params, headers=headers)
        self._debug("response: %s", response.status_code)
        if response.status_code != 200:
            error = parse_api_error("bad request", response)
            self._debug("%s", error)
            raise error
        return response.json()

    def exec_commands(self, commands: Iterable[Command]) -> Any:
        """Send a batch of commands and return the API's reply."""
        return self._do_api("POST", "sync", commands_form(commands))

    def add_item(self, item: Item) -> Any:
        return self.exec_commands([new_command("item_add", item.add_param())])

    def update_item(self, item: Item) -> Any:
        return self.exec_commands([new_command("item_update", item.update_param())])

    def close_items(self, ids: Iterable[str]) -> Any:
        return self.exec_commands([new_command("item_close", {"id": i}) for i in ids])

    def delete_items(self, ids: Iterable[str]) -> Any:
        return self.exec_commands([new_command("item_delete", {"id": i}) for i in ids])

    def move_item(self, item: Item, project_id: str) -> Any:
        return self.exec_commands([new_command("item_move", item.move_param(project_id))])

    def add_project(self, project: Project) -> Any:
        return self.exec_commands([new_command("project_add", project.add_param())])

    def quick_add(self, text: str) -> Any:
        """Add a task from free text, parsed by the service."""
        return self._do_api("POST", "quick/add", {"text": text})

    def sync(self) -> Store:
        """Fetch everything and merge it into the store."""
        params = {"sync_token": "*", "resource_types": '["all"]'}
        data = self._do_api("POST", "sync", params)
        merged = self.store.to_dict()
        if isinstance(data, dict):
            merged.update(data)
        self.store = Store.from_dict(merged)
        return self.store

    def completed_all(self) -> list[CompletedItem]:
        """All completed tasks."""
        data = self._do_api("POST", "completed/get_all", {})
        entries = data.get("items") if isinstance(data, dict) else None
        return [CompletedItem.from_dict(entry) for entry in entries or []]

    def complete_item_id_by_prefix(self, prefix: str) -> str:
        """The one task id starting with prefix, or prefix itself if none or several do."""
        matches = [item.id for item in self.store.items if item.id.startswith(prefix)]
        return matches[0] if len(matches) == 1 else prefix