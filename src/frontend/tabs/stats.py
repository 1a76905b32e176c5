"""Stats tab with audit counters."""

from __future__ import annotations

import time

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, Static

from core.statistics import collect_stats


class StatsTab(Container):
    def compose(self):
        with Vertical(id="stats-panel"):
            yield Static("", id="stats-body")
            with Horizontal(id="stats-actions"):
                yield Button("Refresh", id="refresh-stats", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#stats-actions").styles.height = 3
        self.refresh_stats()

    @on(Button.Pressed, "#refresh-stats")
    def refresh_stats(self) -> None:
        stats = collect_stats(self.app.storage, int(time.time()))
        self.query_one("#stats-body", Static).update(
            f"last hour:          {stats.last_hour}\n"
            f"last week:          {stats.last_week}\n"
            f"all time:           {stats.total}\n"
            f"violations:         {stats.violations}\n"
            f"oracle violations:  {stats.oracle_violations}"
        )
