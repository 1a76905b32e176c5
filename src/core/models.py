"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

REASON_PROFANITY = "violation_profanity"
REASON_ADVERTISING = "violation_ad"
REASON_CUSTOM = "violation_custom"
ORACLE_REASON_PREFIX = "neural_"


def oracle_reason(topic_name: str) -> str:
    """Reason code used when an oracle topic flags a message."""

    return f"{ORACLE_REASON_PREFIX}{topic_name}"


@dataclass(frozen=True)
class Message:
    """One chat message produced by archive ingestion."""

    author: str
    text: str


@dataclass
class Topic:
    """Named oracle classification criterion.

    Priority and the enabled flag change at runtime, so the dataclass is
    mutable; the name is the registry key and is never reassigned.
    """

    name: str
    prompt: str
    priority: int
    enabled: bool = True
    description: str = ""


@dataclass(frozen=True)
class OracleVerdict:
    """Canonical oracle answer, independent of the raw response shape."""

    detected: bool
    confidence: Optional[float]
    raw: str


@dataclass(frozen=True)
class Classification:
    """First oracle topic that flagged a message."""

    topic: str
    verdict: OracleVerdict

    @property
    def reason_code(self) -> str:
        return oracle_reason(self.topic)


@dataclass(frozen=True)
class ViolationRecord:
    """A flagged message inside a batch; ordinal is the 1-based input position."""

    ordinal: int
    author: str
    reason_code: str
    text: str


@dataclass(frozen=True)
class BatchProgress:
    """Snapshot handed to the reporter while a batch runs."""

    processed: int
    total: int
    elapsed_seconds: int

    @property
    def speed(self) -> int:
        if self.elapsed_seconds <= 0:
            return 0
        return self.processed // self.elapsed_seconds


@dataclass(frozen=True)
class BatchSummary:
    """Final counters for a completed or interrupted batch."""

    processed: int
    total: int
    available: int
    elapsed_seconds: int
    violations: int
    interrupted: bool

    @property
    def speed(self) -> int:
        if self.elapsed_seconds <= 0:
            return self.processed
        return self.processed // self.elapsed_seconds


_REASON_LABELS = {
    REASON_PROFANITY: "profanity",
    REASON_ADVERTISING: "advertising",
    REASON_CUSTOM: "banned words",
}


def reason_label(reason_code: Optional[str]) -> str:
    """Human-readable label for a reason code."""

    if not reason_code:
        return "rule violation"
    if reason_code in _REASON_LABELS:
        return _REASON_LABELS[reason_code]
    if reason_code.startswith(ORACLE_REASON_PREFIX):
        topic = reason_code[len(ORACLE_REASON_PREFIX):]
        return f"{topic} (oracle)" if topic else "rule violation"
    return "rule violation"
