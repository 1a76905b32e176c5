"""Audit counters shown in the admin panel and the config TUI."""

from __future__ import annotations

from dataclasses import dataclass

from core.filters import CATEGORY_REASONS
from core.models import ORACLE_REASON_PREFIX
from core.ports import AuditPort

HOUR = 3600
WEEK = 7 * 24 * HOUR


@dataclass(frozen=True)
class StatsSnapshot:
    last_hour: int
    last_week: int
    total: int
    violations: int
    oracle_violations: int


def collect_stats(audit: AuditPort, now: int) -> StatsSnapshot:
    """Count audit events; rule and oracle violations are totals for all time."""

    oracle_violations = audit.count_events(type_prefix=ORACLE_REASON_PREFIX)
    rule_violations = audit.count_events(types=[reason for _, reason in CATEGORY_REASONS])
    return StatsSnapshot(
        last_hour=audit.count_events(since=now - HOUR),
        last_week=audit.count_events(since=now - WEEK),
        total=audit.count_events(),
        violations=rule_violations + oracle_violations,
        oracle_violations=oracle_violations,
    )
