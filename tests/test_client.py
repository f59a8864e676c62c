import json
import uuid
from datetime import datetime, timezone
from urllib.parse import parse_qs

import pytest
import requests
import responses

from todocli.client import (
    ApiError,
    Client,
    Config,
    commands_form,
    new_command,
    parse_api_error,
)
from todocli.models import Due, Item, Project
from todocli.store import Store

SYNC_URL = "https://todoist.com/API/v9/sync"


def _client(store=None) -> Client:
    return Client(Config(access_token="token"), store)


def _form(call) -> dict:
    return {key: values[0] for key, values in parse_qs(call.request.body).items()}


def _sent_commands(call) -> list:
    return json.loads(_form(call)["commands"])


def test_new_command_has_fresh_ids():
    first = new_command("item_close", {"id": "1"})
    second = new_command("item_close", {"id": "1"})
    assert first.type == "item_close"
    assert first.args == {"id": "1"}
    assert uuid.UUID(first.uuid).version == 4
    assert uuid.UUID(first.temp_id).version == 4
    assert first.uuid != first.temp_id
    assert first.uuid != second.uuid


def test_commands_form_round_trip():
    command = new_command("item_delete", {"id": "42"})
    decoded = json.loads(commands_form([command])["commands"])
    assert decoded == [
        {"args": {"id": "42"}, "temp_id": command.temp_id, "type": "item_delete", "uuid": command.uuid}
    ]


def test_add_item_sends_item_add():
    item = Item(content="Buy milk", priority=4, due=Due(string="today"), label_names=["home"])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SYNC_URL, json={"sync_token": "x"})
        _client().add_item(item)
        call = rsps.calls[0]
    assert call.request.headers["Authorization"] == "Bearer token"
    assert call.request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    (sent,) = _sent_commands(call)
    assert sent["type"] == "item_add"
    assert sent["args"] == item.add_param()


def test_close_and_delete_send_one_command_per_id():
    config = Config(access_token="token")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SYNC_URL, json={})
        rsps.add(responses.POST, SYNC_URL, json={})
        client = Client(config, None)
        client.close_items(["1", "2"])
        client.delete_items(["3"])
        closed = _sent_commands(rsps.calls[0])
        deleted = _sent_commands(rsps.calls[1])
        header = rsps.calls[0].request.headers["Authorization"]
    assert header == "Bearer " + config.access_token
    assert [(c["type"], c["args"]) for c in closed] == [
        ("item_close", {"id": "1"}),
        ("item_close", {"id": "2"}),
    ]
    assert [(c["type"], c["args"]) for c in deleted] == [("item_delete", {"id": "3"})]
    shape = json.loads(commands_form([new_command("item_close", {})])["commands"])[0]
    assert all(set(c) == set(shape) for c in closed + deleted)


def test_move_update_and_add_project():
    item = Item(id="7", content="new text")
    with responses.RequestsMock() as rsps:
        for _ in range(3):
            rsps.add(responses.POST, SYNC_URL, json={})
        client = _client()
        client.update_item(item)
        client.move_item(item, "p9")
        client.add_project(Project(name="Work", item_order=3))
        sent = [_sent_commands(call)[0] for call in rsps.calls]
    assert sent[0]["type"] == "item_update"
    assert sent[0]["args"] == item.update_param()
    assert sent[1]["type"] == "item_move"
    assert sent[1]["args"] == {"id": "7", "project_id": "p9"}
    assert sent[2]["type"] == "project_add"
    assert sent[2]["args"] == {"name": "Work", "child_order": 3}


def test_quick_add_posts_text():
    config = Config(access_token="token")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, "https://todoist.com/API/v9/quick/add", json={"id": "1"})
        Client(config, None).quick_add("Call mom tomorrow")
        form = _form(rsps.calls[0])
        header = rsps.calls[0].request.headers["Authorization"]
    assert form == {"text": "Call mom tomorrow"}
    assert header == "Bearer " + config.access_token


def test_sync_replaces_store_and_builds_tree():
    body = {
        "items": [{"id": "a", "content": "root"}, {"id": "b", "parent_id": "a"}],
        "projects": [{"id": "p1", "name": "Inbox"}],
        "user": {"token": "token"},
    }
    client = _client(Store(sync_token="old", day_orders_timestamp="kept"))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SYNC_URL, json=body)
        store = client.sync()
        form = _form(rsps.calls[0])
    assert form == {"sync_token": "*", "resource_types": '["all"]'}
    assert store is client.store
    assert store.root_item.id == "a"
    assert store.find_item("a").child_item is store.find_item("b")
    assert store.root_project.name == "Inbox"
    assert store.user.token == "token"
    assert store.day_orders_timestamp == "kept"


def test_completed_all():
    body = {
        "items": [{"id": "1", "content": "done", "completed_at": "2020-01-17T23:00:00Z"}],
        "projects": {},
    }
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, "https://todoist.com/API/v9/completed/get_all", json=body)
        items = _client().completed_all()
    assert [item.content for item in items] == ["done"]
    assert items[0].date_time() == datetime(2020, 1, 17, 23, tzinfo=timezone.utc)


def test_bad_status_raises_api_error():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SYNC_URL, status=400, json={"error": "Invalid token"})
        with pytest.raises(ApiError) as caught:
            _client().sync()
    assert caught.value.status_code == 400
    assert str(caught.value) == "bad request: 400 Bad Request: Invalid token"


def test_parse_api_error_without_body():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SYNC_URL, status=403, body="")
        response = requests.get(SYNC_URL)
    error = parse_api_error("bad request", response)
    assert str(error) == "bad request: 403 Forbidden"
    assert error.status_code == 403


def test_complete_item_id_by_prefix():
    store = Store(items=[Item(id="123"), Item(id="124"), Item(id="200")])
    client = _client(store)
    assert client.complete_item_id_by_prefix("2") == "200"
    assert client.complete_item_id_by_prefix("12") == "12"
    assert client.complete_item_id_by_prefix("9") == "9"
    assert client.complete_item_id_by_prefix("124") == "124"