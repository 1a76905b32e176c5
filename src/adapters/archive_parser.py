"""Telegram Desktop chat export parsing (JSON and HTML).

Turns an export file into an ordered list of core Message records. The
parser is stateless; it never touches the moderation pipeline.
"""

from __future__ import annotations

import json
from html.parser import HTMLParser
from typing import Any, Optional

from core.models import Message

SUPPORTED_EXTENSIONS = (".json", ".html")


def _flatten_text(raw: Any) -> str:
    """Export text is either a string or a list of strings and entity dicts."""

    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        parts = []
        for part in raw:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict):
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return ""


def parse_json_export(data: Any) -> list[Message]:
    messages: list[Message] = []
    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        return messages

    for entry in data["messages"]:
        if not isinstance(entry, dict):
            continue
        author = entry.get("from")
        if not author or not entry.get("text"):
            continue
        text = _flatten_text(entry["text"]).strip()
        if text:
            messages.append(Message(author=str(author), text=text))
    return messages


class _ExportHTMLParser(HTMLParser):
    """Collects author and text per ``div.message`` block.

    Telegram merges consecutive messages of one sender ("joined" blocks)
    without repeating the name, so the last seen author carries over.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.messages: list[Message] = []
        self._current_author = ""
        self._depth = 0
        self._message_depth: Optional[int] = None
        self._capture: Optional[str] = None
        self._capture_depth = 0
        self._author_parts: list[str] = []
        self._text_parts: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, Optional[str]]]) -> None:
        if tag in ("br", "img", "hr", "meta", "link", "input"):
            if tag == "br" and self._capture == "text":
                self._text_parts.append("\n")
            return
        self._depth += 1
        classes = set((dict(attrs).get("class") or "").split())

        if tag == "div" and "message" in classes and self._message_depth is None:
            self._message_depth = self._depth
            self._author_parts = []
            self._text_parts = []
            return
        if self._message_depth is None or self._capture is not None:
            return
        if "from_name" in classes:
            self._capture, self._capture_depth = "author", self._depth
        elif "text" in classes:
            self._capture, self._capture_depth = "text", self._depth

    def handle_endtag(self, tag: str) -> None:
        if tag in ("br", "img", "hr", "meta", "link", "input"):
            return
        if self._capture is not None and self._depth == self._capture_depth:
            self._capture = None
        if self._message_depth is not None and self._depth == self._message_depth:
            self._finish_message()
            self._message_depth = None
        self._depth -= 1

    def handle_data(self, data: str) -> None:
        if self._capture == "author":
            self._author_parts.append(data)
        elif self._capture == "text":
            self._text_parts.append(data)

    def _finish_message(self) -> None:
        author = "".join(self._author_parts).strip()
        if author:
            self._current_author = author
        text = "".join(self._text_parts).strip()
        if self._current_author and text:
            self.messages.append(Message(author=self._current_author, text=text))


def parse_html_export(html_text: str) -> list[Message]:
    parser = _ExportHTMLParser()
    parser.feed(html_text)
    parser.close()
    return parser.messages


def parse_export(file_name: str, body: bytes) -> list[Message]:
    """Parse an export by file extension; raises ValueError for other types."""

    lowered = file_name.lower()
    text = body.decode("utf-8", errors="replace")
    if lowered.endswith(".json"):
        return parse_json_export(json.loads(text))
    if lowered.endswith(".html"):
        return parse_html_export(text)
    raise ValueError(f"Unsupported export format: {file_name}")
