"""Shared batch report formatting helpers.

Keeping formatting here prevents drift between the bot reporter and the
report chunker and keeps every message consistent. Telegram HTML is used
because Telethon parses it natively.
"""

from __future__ import annotations

import html
from typing import Optional

from core.models import BatchProgress, BatchSummary, ViolationRecord, reason_label
from core.report import byte_size

AUTHOR_CHARS = 64
LABEL_CHARS = 64
ELLIPSIS = "…"


def _clip(value: str, limit: int) -> str:
    return value if len(value) <= limit else value[:limit] + ELLIPSIS


def _entry(ordinal: int, author: str, label: str, text: str) -> str:
    return (
        f"{ordinal}. 👤 <b>{html.escape(author)}</b>\n"
        f"⚠️ <b>{html.escape(label)}</b>\n"
        f"💬 \"{html.escape(text)}\""
    )


def format_violation_entry(record: ViolationRecord, max_bytes: Optional[int] = None) -> str:
    """Render one violation so that it fits ``max_bytes``.

    The quoted text is clipped first. If the author and reason alone are over
    the ceiling, the entry shrinks to its ordinal and reason, then to the
    ordinal only.
    """

    author = _clip(record.author, AUTHOR_CHARS)
    label = _clip(reason_label(record.reason_code), LABEL_CHARS)
    text = record.text
    entry = _entry(record.ordinal, author, label, text)
    if max_bytes is None:
        return entry

    while byte_size(entry) > max_bytes and text:
        overflow = byte_size(entry) - max_bytes
        keep = max(0, byte_size(text) - overflow - 8)
        text = text.encode("utf-8")[:keep].decode("utf-8", errors="ignore")
        entry = _entry(record.ordinal, author, label, text + ELLIPSIS)

    if byte_size(entry) > max_bytes:
        entry = f"{record.ordinal}. ⚠️ {html.escape(label)}"
    if byte_size(entry) > max_bytes:
        entry = f"{record.ordinal}. ⚠️"
    return entry


def no_violations_text(display_name: str) -> str:
    if display_name:
        return f"✅ No violations found in {html.escape(display_name)}."
    return "✅ No violations found."


def started_text(total: int, available: int) -> str:
    return (
        f"🔍 Starting analysis of {total} of {available} messages...\n\n"
        f"📊 Analyzed: 0 of {total}\n"
        "⏱ Time: 0 seconds"
    )


def progress_text(progress: BatchProgress) -> str:
    lines = [
        "🔍 Analysis in progress...",
        "",
        f"📊 Analyzed: {progress.processed} of {progress.total}",
        f"⏱ Time: {progress.elapsed_seconds} seconds",
    ]
    if progress.speed > 0:
        lines.append(f"⚡ Speed: {progress.speed} msg/s")
    return "\n".join(lines)


def completed_text(summary: BatchSummary) -> str:
    return (
        "✅ Analysis finished.\n\n"
        f"📊 Analyzed: {summary.processed} of {summary.total}\n"
        f"⏱ Time: {summary.elapsed_seconds} seconds\n"
        f"⚡ Speed: {summary.speed} msg/s\n"
        f"🚨 Violations: {summary.violations}"
    )


def interrupted_text(summary: BatchSummary) -> str:
    return (
        "🛑 Analysis interrupted by user.\n\n"
        f"📊 Analyzed: {summary.processed} of {summary.total}\n"
        f"⏱ Time: {summary.elapsed_seconds} seconds"
    )


class HtmlReportFormatter:
    """Report formatter consumed by the batch controller."""

    def format_entry(self, record: ViolationRecord, max_bytes: int) -> str:
        return format_violation_entry(record, max_bytes)

    def no_violations(self, display_name: str) -> str:
        return no_violations_text(display_name)
