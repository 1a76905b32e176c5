"""Modal dialogs for the Textual moderation panel."""

from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static, TextArea

from core.models import Topic


class AddTopicScreen(ModalScreen[Optional[Topic]]):
    """Modal form for adding an oracle topic."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Add topic", classes="modal-title"),
            Static("", id="topic-error", classes="modal-error"),
            Static("name", classes="form-label"),
            Input(placeholder="spam", id="topic-name"),
            Static("description (optional)", classes="form-label"),
            Input(placeholder="What the topic catches", id="topic-description"),
            Static("priority (lower runs first)", classes="form-label"),
            Input(value="10", id="topic-priority"),
            Static("system prompt", classes="form-label"),
            TextArea(id="topic-prompt"),
            Horizontal(
                Button("Add", id="topic-confirm", variant="success"),
                Button("Cancel", id="topic-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "topic-cancel":
            self.dismiss(None)
            return
        if event.button.id != "topic-confirm":
            return
        error = self.query_one("#topic-error", Static)
        name = self.query_one("#topic-name", Input).value.strip()
        description = self.query_one("#topic-description", Input).value.strip()
        raw_priority = self.query_one("#topic-priority", Input).value.strip()
        prompt = self.query_one("#topic-prompt", TextArea).text.strip()
        if not name:
            error.update("name is required")
            return
        try:
            priority = int(raw_priority)
        except ValueError:
            error.update("priority must be an integer")
            return
        if not prompt:
            error.update("system prompt is required")
            return
        self.dismiss(Topic(name=name, prompt=prompt, priority=priority, enabled=True, description=description))


class DeleteTopicScreen(ModalScreen[bool]):
    """Confirm deletion of a topic."""

    def __init__(self, topic_name: str) -> None:
        super().__init__()
        self._topic_name = topic_name

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Delete topic?", classes="modal-title"),
            Static(self._topic_name, classes="modal-body"),
            Horizontal(
                Button("Delete", id="delete-topic-confirm", variant="error"),
                Button("Cancel", id="delete-topic-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "delete-topic-confirm":
            self.dismiss(True)
        else:
            self.dismiss(False)
