"""Words tab: edit the rule filter word lists."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Select, Static

from ..constants import WORD_CATEGORY_LABELS


class WordsTab(Container):
    """Browse, add and delete words per category."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._category = WORD_CATEGORY_LABELS[0][1]
        self._current_word: Optional[str] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="words-panel"):
            yield Select(
                [(label, value) for label, value in WORD_CATEGORY_LABELS],
                value=self._category,
                allow_blank=False,
                id="words-category",
            )
            yield DataTable(id="words-table", cursor_type="row")
            with Horizontal(id="words-actions"):
                yield Input(placeholder="New word", id="word-input")
                yield Button("Add", id="add-word", variant="success")
                yield Button("Delete", id="delete-word", variant="error")
            yield Static("", id="words-output")

    def on_mount(self) -> None:
        table = self.query_one("#words-table", DataTable)
        table.add_column("word", key="word", width=48)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self.query_one("#words-actions").styles.height = 3
        self._table_ready = True
        self.reload()

    def reload(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#words-table", DataTable)
        table.clear()
        words = sorted(self.app.storage.get_words(self._category))
        for word in words:
            table.add_row(word, key=word)
        self._current_word = None
        self.query_one("#delete-word", Button).disabled = True
        self._set_output(f"{len(words)} words in {self._category}")

    @on(Select.Changed, "#words-category")
    def _on_category_changed(self, event: Select.Changed) -> None:
        self._category = str(event.value)
        self.reload()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._current_word = event.row_key.value
        self.query_one("#delete-word", Button).disabled = self._current_word is None

    @on(Button.Pressed, "#add-word")
    def _on_add(self) -> None:
        field = self.query_one("#word-input", Input)
        word = field.value.strip().lower()
        if not word:
            self._set_output("Enter a word first.")
            return
        self.app.storage.add_word(self._category, word)
        field.value = ""
        self.reload()
        self._set_output(f"added {word} to {self._category}")

    @on(Button.Pressed, "#delete-word")
    def _on_delete(self) -> None:
        if self._current_word is None:
            return
        word = self._current_word
        self.app.storage.delete_word(self._category, word)
        self.reload()
        self._set_output(f"removed {word} from {self._category}")

    def _set_output(self, message: str) -> None:
        self.query_one("#words-output", Static).update(message)
