"""SQLite storage adapter.

Implements the core word-list, topic and audit ports using a simple SQLite
database.
"""

from __future__ import annotations

import sqlite3
import time
from typing import Iterable, Optional

from core.models import Topic
from core.ports import WORD_CATEGORIES

# Table names are fixed here, never taken from user input.
_WORD_TABLES = {
    "profanity": "profanity_words",
    "advertising": "ad_keywords",
    "custom": "custom_words",
}


def _word_table(category: str) -> str:
    try:
        return _WORD_TABLES[category]
    except KeyError:
        raise ValueError(f"Unknown word category: {category}") from None


def normalize_word(word: str) -> str:
    """Words are stored and compared lowercase."""

    return word.strip().lower()


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the storage ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - profanity_words / ad_keywords / custom_words: one word per row
        - topics: oracle topics with prompt, priority and enabled flag
        - statistics: append-only audit events
        """

        with self._connect() as conn:
            for table in _WORD_TABLES.values():
                conn.execute(f"CREATE TABLE IF NOT EXISTS {table} (word TEXT PRIMARY KEY)")
            # topics keeps insertion order through the autoincrement id, which
            # breaks priority ties when the registry is loaded.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS topics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT UNIQUE,
                    description TEXT,
                    system_prompt TEXT,
                    priority INTEGER,
                    enabled INTEGER DEFAULT 1
                )
                """
            )
            # statistics is only ever counted, never read row by row.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS statistics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT,
                    timestamp INTEGER
                )
                """
            )

    # Word lists

    def get_words(self, category: str) -> set[str]:
        """Return the category's words, lowercased."""

        table = _word_table(category)
        with self._connect() as conn:
            rows = conn.execute(f"SELECT word FROM {table}").fetchall()
        return {row["word"].lower() for row in rows}

    def add_word(self, category: str, word: str) -> None:
        table = _word_table(category)
        normalized = normalize_word(word)
        if not normalized:
            raise ValueError("Word must not be empty")
        with self._connect() as conn:
            conn.execute(f"INSERT OR IGNORE INTO {table} (word) VALUES (?)", (normalized,))

    def add_words(self, category: str, words: Iterable[str]) -> int:
        """Insert many words and return how many were new."""

        table = _word_table(category)
        normalized = [normalize_word(word) for word in words]
        normalized = [word for word in normalized if word]
        with self._connect() as conn:
            before = conn.total_changes
            conn.executemany(
                f"INSERT OR IGNORE INTO {table} (word) VALUES (?)",
                [(word,) for word in normalized],
            )
            return conn.total_changes - before

    def delete_word(self, category: str, word: str) -> bool:
        table = _word_table(category)
        with self._connect() as conn:
            cur = conn.execute(f"DELETE FROM {table} WHERE word = ?", (normalize_word(word),))
            return cur.rowcount > 0

    def seed_words(self, category: str, words: Iterable[str]) -> int:
        """Fill a category only when it is still empty."""

        if self.get_words(category):
            return 0
        return self.add_words(category, words)

    def all_words(self) -> dict[str, set[str]]:
        return {category: self.get_words(category) for category in WORD_CATEGORIES}

    # Topics

    def list_topics(self) -> list[Topic]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, description, system_prompt, priority, enabled FROM topics ORDER BY id"
            ).fetchall()
        return [
            Topic(
                name=row["name"],
                prompt=row["system_prompt"] or "",
                priority=int(row["priority"] or 0),
                enabled=bool(row["enabled"]),
                description=row["description"] or "",
            )
            for row in rows
        ]

    def upsert_topic(self, topic: Topic) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO topics (name, description, system_prompt, priority, enabled)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    description = excluded.description,
                    system_prompt = excluded.system_prompt,
                    priority = excluded.priority,
                    enabled = excluded.enabled
                """,
                (topic.name, topic.description, topic.prompt, topic.priority, int(topic.enabled)),
            )

    def delete_topic(self, name: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM topics WHERE name = ?", (name,))

    def set_enabled(self, name: str, enabled: bool) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE topics SET enabled = ? WHERE name = ?", (int(enabled), name))

    # Audit

    def record_event(self, event_type: str, timestamp: Optional[int] = None) -> None:
        if timestamp is None:
            timestamp = int(time.time())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO statistics (type, timestamp) VALUES (?, ?)",
                (event_type, timestamp),
            )

    def count_events(
        self,
        since: Optional[int] = None,
        types: Optional[Iterable[str]] = None,
        type_prefix: Optional[str] = None,
    ) -> int:
        clauses: list[str] = []
        params: list[object] = []
        if since is not None:
            clauses.append("timestamp > ?")
            params.append(since)
        if types is not None:
            type_list = list(types)
            if not type_list:
                return 0
            clauses.append(f"type IN ({', '.join('?' for _ in type_list)})")
            params.extend(type_list)
        if type_prefix is not None:
            clauses.append("type LIKE ? ESCAPE '\\'")
            escaped = type_prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            params.append(f"{escaped}%")
        query = "SELECT COUNT(*) AS c FROM statistics"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        return int(row["c"]) if row else 0
