import csv
import io
import json
from urllib.parse import parse_qs

import pytest
import responses

from todocli import commands
from todocli.cache import read_cache
from todocli.client import SERVER, Client, Config
from todocli.errors import CommandFailed, IdNotFound
from todocli.format import set_color_enabled
from todocli.models import Item, Label, Project, Section, User
from todocli.output import CsvWriter
from todocli.store import Store

SYNC_REPLY = {"sync_token": "tok1", "full_sync": True}


@pytest.fixture(autouse=True)
def _no_color():
    set_color_enabled(False)


def build_store(karma=0.0):
    return Store(
        items=[
            Item(id="100", content="Buy milk", project_id="p1", priority=4, label_names=["urgent"]),
            Item(
                id="200",
                content="Write [report](http://example.com/r)",
                project_id="p2",
                section_id="s1",
                priority=1,
            ),
            Item(id="201", content="Draft", project_id="p2", parent_id="200", priority=2),
            Item(id="300", content="Done", project_id="p1", checked=True),
        ],
        projects=[
            Project(id="p1", name="Inbox"),
            Project(id="p2", name="Work"),
            Project(id="p3", name="Sub", parent_id="p2"),
        ],
        labels=[Label(id="l1", name="urgent")],
        sections=[Section(id="s1", project_id="p2", name="Backlog")],
        user=User(karma=karma),
    )


def make_ctx(tmp_path, store=None, **options):
    out = io.StringIO()
    client = Client(Config(access_token="token"), store if store is not None else build_store())
    ctx = commands.Context(
        client=client, writer=CsvWriter(out), cache_path=tmp_path / "cache.json", **options
    )
    return ctx, out


def rows_of(out):
    return list(csv.reader(io.StringIO(out.getvalue())))


def sent_commands(call):
    body = call.request.body
    if isinstance(body, bytes):
        body = body.decode()
    return json.loads(parse_qs(body)["commands"][0])


def test_parse_label_names():
    assert commands.parse_label_names(" a, ,b ,") == ["a", "b"]
    assert commands.parse_label_names("") == []


def test_traverse_items_order_and_depth():
    store = build_store()
    walked = [(item.id, depth) for item, depth in commands.traverse_items(store.root_item)]
    assert walked == [("100", 0), ("200", 0), ("201", 1), ("300", 0)]


def test_traverse_projects_order_and_depth():
    store = build_store()
    walked = [(p.id, depth) for p, depth in commands.traverse_projects(store.root_project)]
    assert walked == [("p1", 0), ("p2", 0), ("p3", 1)]
    assert list(commands.traverse_projects(None)) == []


def test_sort_rows_ignores_colors_and_is_stable():
    rows = [["a", "\x1b[1mp2\x1b[0m"], ["b", "p1"], ["c", "p2"]]
    assert [row[0] for row in commands.sort_rows(rows, 1)] == ["b", "a", "c"]


def test_list_items_rows(tmp_path):
    ctx, out = make_ctx(tmp_path)
    commands.list_items(ctx)
    assert rows_of(out) == [
        ["100", "p1", "", "#Inbox", "@urgent", "Buy milk"],
        ["200", "p4", "", "#Work/Backlog", "", "Write report"],
        ["201", "p3", "", "#Work", "", "Draft"],
    ]


def test_list_items_header_and_sort(tmp_path):
    ctx, out = make_ctx(tmp_path, header=True)
    commands.list_items(ctx, sort_priority=True)
    rows = rows_of(out)
    assert rows[0] == ["ID", "Priority", "DueDate", "Project", "Labels", "Content"]
    assert [row[0] for row in rows[1:]] == ["100", "201", "200"]


def test_list_items_indent_and_namespace(tmp_path):
    ctx, out = make_ctx(tmp_path, indent=True, namespace=True)
    commands.list_items(ctx)
    child = rows_of(out)[2]
    assert child[5] == "    Write [report](http://example.com/r):Draft"


def test_list_items_filter(tmp_path):
    ctx, out = make_ctx(tmp_path, item_filter=lambda item, projects, labels: item.project_id == "p1")
    commands.list_items(ctx)
    assert [row[0] for row in rows_of(out)] == ["100"]


def test_list_items_without_tasks(tmp_path, capsys):
    ctx, out = make_ctx(tmp_path, store=Store())
    commands.list_items(ctx)
    assert out.getvalue() == ""
    assert "There is no task" in capsys.readouterr().err


def test_labels_output(tmp_path):
    ctx, out = make_ctx(tmp_path, header=True)
    commands.labels(ctx)
    assert rows_of(out) == [["ID", "Name"], ["l1", "@urgent"]]


def test_projects_output_with_namespace(tmp_path):
    ctx, out = make_ctx(tmp_path, project_namespace=True)
    commands.projects(ctx)
    assert rows_of(out) == [["p1", "#Inbox"], ["p2", "#Work"], ["p3", "#Work:Sub"]]


def test_show_records_and_browse(tmp_path):
    opened = []
    ctx, out = make_ctx(tmp_path, browse=True, open_url=opened.append)
    commands.show(ctx, "200")
    assert rows_of(out) == [
        ["ID", "200"],
        ["Content", "Write report"],
        ["Project", "#Work"],
        ["Labels", ""],
        ["Priority", "p4"],
        ["DueDate", ""],
        ["URL", "http://example.com/r"],
    ]
    assert opened == ["http://example.com/r"]


def test_show_unknown_id(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with pytest.raises(IdNotFound):
        commands.show(ctx, "999")


def test_karma_prints_value(tmp_path, capsys):
    ctx, _ = make_ctx(tmp_path, store=build_store(karma=42.0))
    commands.karma(ctx)
    assert capsys.readouterr().out == "42\n"
    ctx, _ = make_ctx(tmp_path, store=build_store(karma=2.5))
    commands.karma(ctx)
    assert capsys.readouterr().out == "2.5\n"


def test_add_sends_item_and_syncs(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "sync", json=SYNC_REPLY)
        commands.add(
            ctx,
            "Call Bob",
            priority=1,
            label_names=" home , errands",
            project_name="Work",
            date="tomorrow",
            reminder=True,
            parent_id="200",
        )
        sent = sent_commands(rsps.calls[0])
        assert len(rsps.calls) == 2
    assert sent[0]["type"] == "item_add"
    assert sent[0]["args"] == {
        "content": "Call Bob",
        "labels": ["home", "errands"],
        "priority": 4,
        "project_id": "p2",
        "due": {"date": "", "timezone": "", "is_recurring": False, "string": "tomorrow", "lang": ""},
        "parent_id": "200",
        "auto_reminder": True,
    }
    assert read_cache(tmp_path / "cache.json").sync_token == "tok1"


def test_add_unknown_project(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with responses.RequestsMock():
        with pytest.raises(CommandFailed, match="Nowhere"):
            commands.add(ctx, "Task", project_name="Nowhere")


def test_add_project(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "sync", json=SYNC_REPLY)
        commands.add_project(ctx, "New", color=30, item_order=2)
        sent = sent_commands(rsps.calls[0])
        assert len(rsps.calls) == 2
    assert sent[0]["type"] == "project_add"
    assert sent[0]["args"] == {"name": "New", "color": "30", "child_order": 2}
    assert read_cache(tmp_path / "cache.json").sync_token == "tok1"


def test_add_project_requires_name(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with pytest.raises(CommandFailed):
        commands.add_project(ctx, "")


def test_close(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with pytest.raises(CommandFailed):
        commands.close(ctx, [])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "sync", json=SYNC_REPLY)
        commands.close(ctx, ["100", "200"])
        sent = sent_commands(rsps.calls[0])
    assert [(c["type"], c["args"]) for c in sent] == [
        ("item_close", {"id": "100"}),
        ("item_close", {"id": "200"}),
    ]
    assert read_cache(tmp_path / "cache.json").sync_token == "tok1"


def test_delete_completes_prefixes(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "sync", json=SYNC_REPLY)
        commands.delete(ctx, ["10", "20"])
        sent = sent_commands(rsps.calls[0])
    assert [c["args"]["id"] for c in sent] == ["100", "20"]
    assert {c["type"] for c in sent} == {"item_delete"}
    assert read_cache(tmp_path / "cache.json").sync_token == "tok1"


def test_delete_failures(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with pytest.raises(CommandFailed):
        commands.delete(ctx, [])
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "sync", json={"error": "nope"}, status=400)
        with pytest.raises(CommandFailed):
            commands.delete(ctx, ["100"])


def test_modify_updates_and_moves(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "sync", json=SYNC_REPLY)
        commands.modify(
            ctx, "10", content="Buy oat milk", priority=2, label_names="urgent", project_name="Work"
        )
        update = sent_commands(rsps.calls[0])[0]
        move = sent_commands(rsps.calls[1])[0]
        assert len(rsps.calls) == 3
    assert update["type"] == "item_update"
    assert update["args"]["id"] == "100"
    assert update["args"]["content"] == "Buy oat milk"
    assert update["args"]["priority"] == 3
    assert update["args"]["labels"] == ["urgent"]
    assert move["type"] == "item_move"
    assert move["args"] == {"id": "100", "project_id": "p2"}
    assert read_cache(tmp_path / "cache.json").sync_token == "tok1"


def test_modify_errors(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with pytest.raises(CommandFailed):
        commands.modify(ctx, "")
    with pytest.raises(IdNotFound):
        commands.modify(ctx, "999")


def test_quick_sends_text(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with pytest.raises(CommandFailed):
        commands.quick(ctx, "")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "quick/add", json={})
        rsps.add(responses.POST, SERVER + "sync", json=SYNC_REPLY)
        commands.quick(ctx, "Pay rent tomorrow")
        body = rsps.calls[0].request.body
    if isinstance(body, bytes):
        body = body.decode()
    assert parse_qs(body)["text"] == ["Pay rent tomorrow"]


def test_completed_list(tmp_path):
    ctx, out = make_ctx(tmp_path, header=True)
    reply = {
        "items": [
            {"id": "900", "project_id": "p2", "content": "Old [doc](http://example.com/d)", "completed_at": ""},
            {"id": "901", "project_id": "zz", "content": "Gone", "completed_at": ""},
        ]
    }
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "completed/get_all", json=reply)
        commands.completed_list(ctx)
    assert rows_of(out) == [
        ["ID", "CompletedDate", "Project", "Content"],
        ["900", "", "#Work", "Old doc"],
        ["901", "", "Unknown", "Gone"],
    ]


def test_completed_list_filter(tmp_path):
    ctx, out = make_ctx(tmp_path, item_filter=lambda item, projects, labels: item.id == "901")
    reply = {"items": [{"id": "900", "project_id": "p2"}, {"id": "901", "project_id": "p1"}]}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "completed/get_all", json=reply)
        commands.completed_list(ctx)
    assert [row[0] for row in rows_of(out)] == ["901"]


def test_sync_writes_cache(tmp_path):
    ctx, _ = make_ctx(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, SERVER + "sync", json=SYNC_REPLY)
        commands.sync(ctx)
    cached = read_cache(tmp_path / "cache.json")
    assert cached.sync_token == "tok1"
    assert [item.id for item in cached.items] == [item.id for item in ctx.store.items]