"""Main Textual app for the teleguard moderation panel."""

from __future__ import annotations

import os
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import ContentSwitcher, Footer, Static, Tab, Tabs

from adapters.sqlite_storage import SQLiteStorage
from .constants import TELEGRAM_BLUE
from .tabs.stats import StatsTab
from .tabs.topics import TopicsTab
from .tabs.words import WordsTab


class ModerationPanelApp(App):
    """Panel over the bot database: word lists, oracle topics, counters."""

    BINDINGS = [
        ("ctrl+r", "reload", "Reload"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #0f1a21;
        color: #e8eef5;
    }

    #header {
        height: 6;
        padding: 1 4;
        border-bottom: solid #2a3a46;
    }

    #header-left, #header-right {
        width: 1fr;
    }

    #header-right {
        text-align: right;
    }

    #title {
        text-style: bold;
    }

    .subtle {
        color: #c6d2dd;
    }

    #tabs-bar {
        height: 5;
        padding: 0 4;
        border-bottom: solid #2a3a46;
        align: center middle;
    }

    #tabs-center {
        width: 100%;
        height: 4;
        align: center middle;
    }

    #tabs {
        width: auto;
    }

    Tab {
        height: 3;
        text-style: bold;
    }

    #topics-left {
        width: 2fr;
    }

    #topics-right {
        width: 1fr;
        padding: 0 2;
    }

    #words-actions Input {
        width: 1fr;
    }

    ModalScreen {
        align: center middle;
    }

    .modal-dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        border: round #2a3a46;
        background: #13222c;
    }

    .modal-title {
        text-style: bold;
    }

    .modal-error {
        color: #ff6b6b;
    }

    .modal-actions {
        height: 3;
        margin-top: 1;
    }

    #topic-prompt {
        height: 6;
    }
    """

    def __init__(self, storage: SQLiteStorage, db_path: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.storage = storage
        self._db_path = db_path

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                with Vertical(id="header-right"):
                    yield Static(f"db: {os.path.basename(self._db_path)}", classes="subtle")

        with Container(id="tabs-bar"):
            with Center(id="tabs-center"):
                yield Tabs(
                    Tab("Words", id="words"),
                    Tab("Topics", id="topics"),
                    Tab("Stats", id="stats"),
                    id="tabs",
                )

        with ContentSwitcher(id="content", initial="words"):
            yield WordsTab(id="words")
            yield TopicsTab(id="topics")
            yield StatsTab(id="stats")
        yield Footer()

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or ""
        if not tab_id:
            label = event.tab.label
            if hasattr(label, "plain"):
                label = label.plain
            tab_id = str(label).strip().lower()
        self.query_one("#content", ContentSwitcher).current = tab_id

    def action_reload(self) -> None:
        self.query_one(WordsTab).reload()
        self.query_one(StatsTab).refresh_stats()

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("TELE", TELEGRAM_BLUE),
            ("GUARD > Moderation Panel", "bold"),
        )
