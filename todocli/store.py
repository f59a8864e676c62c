"""The local copy of the account: tasks, projects, labels and sections, linked into trees."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .models import Item, Label, Project, Section, User


def _append_sibling(node, new, attr: str) -> None:
    while getattr(node, attr) is not None:
        node = getattr(node, attr)
    setattr(node, attr, new)


def _append_child(parent, new, child_attr: str, sibling_attr: str) -> None:
    first = getattr(parent, child_attr)
    if first is None:
        setattr(parent, child_attr, new)
    else:
        _append_sibling(first, new, sibling_attr)


@dataclass
class Store:
    """Everything a full sync returns, plus lookup tables and tree links."""

    collaborator_states: list[Any] = field(default_factory=list)
    collaborators: list[Any] = field(default_factory=list)
    day_orders: Any = None
    day_orders_timestamp: str = ""
    filters: list[dict[str, Any]] = field(default_factory=list)
    full_sync: bool = False
    items: list[Item] = field(default_factory=list)
    labels: list[Label] = field(default_factory=list)
    live_notifications: list[dict[str, Any]] = field(default_factory=list)
    live_notifications_last_read_id: str = ""
    locations: list[Any] = field(default_factory=list)
    notes: list[dict[str, Any]] = field(default_factory=list)
    project_notes: list[Any] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    reminders: list[dict[str, Any]] = field(default_factory=list)
    sync_token: str = ""
    temp_id_mapping: dict[str, Any] = field(default_factory=dict)
    user: User = field(default_factory=User)
    root_item: Item | None = field(default=None, init=False, repr=False, compare=False)
    root_project: Project | None = field(default=None, init=False, repr=False, compare=False)
    item_map: dict[str, Item] = field(default_factory=dict, init=False, repr=False, compare=False)
    project_map: dict[str, Project] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )
    label_map: dict[str, Label] = field(default_factory=dict, init=False, repr=False, compare=False)
    section_map: dict[str, Section] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self.construct_item_tree()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Store:
        """Build a store from a sync response or a cache document."""

        def models(key: str, model) -> list:
            return [model.from_dict(entry) for entry in data.get(key) or []]

        def raw(key: str, default: Any) -> Any:
            value = data.get(key)
            return copy.deepcopy(value) if value is not None else default

        return cls(
            collaborator_states=raw("collaborator_states", []),
            collaborators=raw("collaborators", []),
            day_orders=raw("day_orders", None),
            day_orders_timestamp=raw("day_orders_timestamp", ""),
            filters=raw("filters", []),
            full_sync=bool(data.get("full_sync", False)),
            items=models("items", Item),
            labels=models("labels", Label),
            live_notifications=raw("live_notifications", []),
            live_notifications_last_read_id=raw("live_notifications_last_read_id", ""),
            locations=raw("locations", []),
            notes=raw("notes", []),
            project_notes=raw("project_notes", []),
            projects=models("projects", Project),
            sections=models("sections", Section),
            reminders=raw("reminders", []),
            sync_token=raw("sync_token", ""),
            user=User.from_dict(data.get("user") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """The store as a JSON-ready document."""
        return {
            "collaborator_states": copy.deepcopy(self.collaborator_states),
            "collaborators": copy.deepcopy(self.collaborators),
            "day_orders": copy.deepcopy(self.day_orders),
            "day_orders_timestamp": self.day_orders_timestamp,
            "filters": copy.deepcopy(self.filters),
            "full_sync": self.full_sync,
            "items": [item.to_dict() for item in self.items],
            "labels": [label.to_dict() for label in self.labels],
            "live_notifications": copy.deepcopy(self.live_notifications),
            "live_notifications_last_read_id": self.live_notifications_last_read_id,
            "locations": copy.deepcopy(self.locations),
            "notes": copy.deepcopy(self.notes),
            "project_notes": copy.deepcopy(self.project_notes),
            "projects": [project.to_dict() for project in self.projects],
            "sections": [section.to_dict() for section in self.sections],
            "reminders": copy.deepcopy(self.reminders),
            "sync_token": self.sync_token,
            "temp_id_mapping": {},
            "user": self.user.to_dict(),
        }

    def find_item(self, item_id: str) -> Item | None:
        return self.item_map.get(item_id)

    def find_project(self, project_id: str) -> Project | None:
        return self.project_map.get(project_id)

    def find_section(self, section_id: str) -> Section | None:
        return self.section_map.get(section_id)

    def find_label(self, label_id: str) -> Label | None:
        return self.label_map.get(label_id)

    def construct_item_tree(self) -> None:
        """Rebuild the lookup tables and the task and project trees.

        The first top-level entry becomes the root; other top-level entries
        follow it as siblings and nested entries hang below their parents.
        """
        self.label_map = {label.id: label for label in self.labels}
        self.section_map = {section.id: section for section in self.sections}

        for item in self.items:
            item.child_item = None
            item.brother_item = None
        self.item_map = {item.id: item for item in self.items}

        for project in self.projects:
            project.child_project = None
            project.brother_project = None
        self.project_map = {project.id: project for project in self.projects}

        self.root_item = next((i for i in self.items if i.parent_id is None), None)
        self.root_project = next((p for p in self.projects if p.parent_id is None), None)

        root_item = self.root_item
        for item in self.items:
            if root_item is not None and item.id == root_item.id:
                continue
            if item.parent_id is None:
                _append_sibling(root_item, item, "brother_item")
                continue
            parent = self.find_item(item.parent_id)
            if parent is None:
                raise LookupError(f"parent task {item.parent_id} of task {item.id} not found")
            _append_child(parent, item, "child_item", "brother_item")

        root_project = self.root_project
        for project in self.projects:
            if root_project is not None and project.id == root_project.id:
                continue
            if project.parent_id is None:
                _append_sibling(root_project, project, "brother_project")
                continue
            parent = self.find_project(project.parent_id)
            if parent is None:
                raise LookupError(
                    f"parent project {project.parent_id} of project {project.id} not found"
                )
            _append_child(parent, project, "child_project", "brother_project")


def search_item_parents(store: Store, item: Item) -> list[Item]:
    """Ancestors of a task, outermost first."""
    parents: list[Item] = []
    current = item
    while current.parent_id is not None:
        parent = store.find_item(current.parent_id)
        if parent is None:
            raise LookupError(f"parent task {current.parent_id} not found")
        parents.append(parent)
        current = parent
    parents.reverse()
    return parents


def search_project_parents(store: Store, project: Project) -> list[Project]:
    """Ancestors of a project, outermost first."""
    parents: list[Project] = []
    current = project
    while current.parent_id is not None:
        parent = store.find_project(current.parent_id)
        if parent is None:
            raise LookupError(f"parent project {current.parent_id} not found")
        parents.append(parent)
        current = parent
    parents.reverse()
    return parents