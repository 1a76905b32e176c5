"""Topics tab for the oracle topic registry."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static

from core.errors import DuplicateTopic, NotFound
from core.models import Topic
from core.topics import TopicRegistry
from ..modals import AddTopicScreen, DeleteTopicScreen


class TopicsTab(Container):
    """List topics in check order; add, toggle and delete them."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._registry: Optional[TopicRegistry] = None
        self._current_name: Optional[str] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="topics-panel"):
            with Horizontal(id="topics-body"):
                with Container(id="topics-left"):
                    yield DataTable(id="topics-table", cursor_type="row")
                with Container(id="topics-right"):
                    yield Static("Topic prompt", id="topics-title")
                    yield Static("", id="topic-detail")
            with Horizontal(id="topics-actions"):
                yield Button("Add topic", id="add-topic", variant="success")
                yield Button("Enable/Disable", id="toggle-topic")
                yield Button("Delete topic", id="delete-topic", variant="error")
            yield Static("", id="topics-output")

    def on_mount(self) -> None:
        table = self.query_one("#topics-table", DataTable)
        table.add_column("enabled", key="enabled", width=8)
        table.add_column("priority", key="priority", width=9)
        table.add_column("name", key="name", width=24)
        table.add_column("description", key="description", width=36)
        table.zebra_stripes = True
        self.query_one("#topics-actions").styles.height = 3
        self._registry = TopicRegistry(self.app.storage)
        self._registry.load()
        self._table_ready = True
        self.reload()

    def reload(self) -> None:
        if not self._table_ready or self._registry is None:
            return
        table = self.query_one("#topics-table", DataTable)
        table.clear()
        for topic in self._registry.sorted_by_priority():
            table.add_row(
                "yes" if topic.enabled else "no",
                str(topic.priority),
                topic.name,
                topic.description,
                key=topic.name,
            )
        self._select(None)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._select(event.row_key.value)

    def _select(self, name: Optional[str]) -> None:
        self._current_name = name
        detail = ""
        if name is not None and self._registry is not None and name in self._registry:
            detail = self._registry.get(name).prompt
        self.query_one("#topic-detail", Static).update(detail)
        self.query_one("#toggle-topic", Button).disabled = name is None
        self.query_one("#delete-topic", Button).disabled = name is None

    @on(Button.Pressed, "#add-topic")
    def _on_add(self) -> None:
        self.app.push_screen(AddTopicScreen(), self._handle_add)

    def _handle_add(self, topic: Optional[Topic]) -> None:
        if topic is None or self._registry is None:
            return
        try:
            self._registry.add(topic)
        except DuplicateTopic:
            self._set_output(f"topic {topic.name} already exists")
            return
        self.reload()
        self._set_output(f"added topic {topic.name}")

    @on(Button.Pressed, "#toggle-topic")
    def _on_toggle(self) -> None:
        if self._current_name is None or self._registry is None:
            return
        try:
            topic = self._registry.get(self._current_name)
        except NotFound:
            self.reload()
            return
        self._registry.set_enabled(topic.name, not topic.enabled)
        self.reload()
        self._set_output(f"{topic.name}: {'enabled' if topic.enabled else 'disabled'}")

    @on(Button.Pressed, "#delete-topic")
    def _on_delete(self) -> None:
        if self._current_name is None:
            return
        name = self._current_name
        self.app.push_screen(DeleteTopicScreen(name), lambda confirmed: self._handle_delete(name, confirmed))

    def _handle_delete(self, name: str, confirmed: bool) -> None:
        if not confirmed or self._registry is None:
            return
        try:
            self._registry.remove(name)
        except NotFound:
            pass
        self.reload()
        self._set_output(f"deleted topic {name}")

    def _set_output(self, message: str) -> None:
        self.query_one("#topics-output", Static).update(message)
