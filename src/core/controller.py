"""Batch moderation pipeline.

The controller enforces a strict order per batch:
1) Reject the run if the channel already has a live session
2) Truncate the input to the chosen limit, keeping original order
3) For each message: poll cancellation, run the detection chain, record a
   violation on any hit, update counters, maybe emit progress
4) Close the session, then emit either the final summary plus the chunked
   report, or the interrupted summary with no report at all

Messages are processed strictly one after another so the "first detected
topic" semantics and progress accounting stay simple.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from core.config import AnalysisConfig
from core.detector import ViolationDetector
from core.errors import AlreadyRunning, Cancelled
from core.models import BatchProgress, BatchSummary, Message, ViolationRecord
from core.ports import BatchReporterPort
from core.report import chunk_report
from core.sessions import AnalysisSession, PendingBatch, PendingBatchStore, SessionStore

LOGGER = logging.getLogger(__name__)


class ReportFormatterPort(Protocol):
    def format_entry(self, record: ViolationRecord, max_bytes: int) -> str:
        ...

    def no_violations(self, display_name: str) -> str:
        ...


@dataclass(frozen=True)
class BatchResult:
    summary: BatchSummary
    violations: list[ViolationRecord]
    chunks: list[str]


class BatchAnalysisController:
    """Runs at most one batch per channel and reports its outcome."""

    def __init__(
        self,
        detector: ViolationDetector,
        reporter: BatchReporterPort,
        formatter: ReportFormatterPort,
        config: Optional[AnalysisConfig] = None,
        sessions: Optional[SessionStore] = None,
        pending: Optional[PendingBatchStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._detector = detector
        self._reporter = reporter
        self._formatter = formatter
        self._config = config or AnalysisConfig()
        self._sessions = sessions or SessionStore()
        self._pending = pending or PendingBatchStore()
        self._clock = clock

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    def is_running(self, channel_id: int) -> bool:
        return self._sessions.is_running(channel_id)

    def submit(self, channel_id: int, messages: Sequence[Message], display_name: str) -> PendingBatch:
        """First handshake phase: park messages until a limit is chosen."""

        if self._sessions.is_running(channel_id):
            raise AlreadyRunning(channel_id)
        return self._pending.put(channel_id, messages, display_name)

    def pending(self, channel_id: int) -> Optional[PendingBatch]:
        return self._pending.peek(channel_id)

    def take_pending(self, channel_id: int) -> Optional[PendingBatch]:
        return self._pending.take(channel_id)

    def discard_pending(self, channel_id: int) -> None:
        self._pending.discard(channel_id)

    def cancel(self, channel_id: int) -> bool:
        """Request cancellation; the running loop observes it and cleans up."""

        requested = self._sessions.request_cancel(channel_id)
        if requested:
            LOGGER.info("Cancellation requested for channel %s", channel_id)
        return requested

    async def run(
        self,
        channel_id: int,
        messages: Sequence[Message],
        limit: Optional[int] = None,
        display_name: str = "",
    ) -> BatchResult:
        """Analyze ``messages[:limit]`` (all when limit is None) for one channel.

        Raises AlreadyRunning if a batch is live for the channel.
        """

        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative")
        selected = list(messages) if limit is None else list(messages[:limit])
        session = self._sessions.open(channel_id, total=len(selected), started_at=self._clock())
        LOGGER.info(
            "Batch started for channel %s: %s of %s messages",
            channel_id,
            len(selected),
            len(messages),
        )

        violations: list[ViolationRecord] = []
        try:
            await self._notify(self._reporter.started(channel_id, len(selected), len(messages)))
            interrupted = await self._process(session, selected, violations)
        finally:
            self._sessions.close(session)

        summary = BatchSummary(
            processed=session.processed,
            total=len(selected),
            available=len(messages),
            elapsed_seconds=self._elapsed(session),
            violations=len(violations),
            interrupted=interrupted,
        )

        if interrupted:
            LOGGER.info(
                "Batch interrupted for channel %s at %s of %s",
                channel_id,
                summary.processed,
                summary.total,
            )
            await self._notify(self._reporter.interrupted(channel_id, summary))
            return BatchResult(summary=summary, violations=violations, chunks=[])

        LOGGER.info(
            "Batch finished for channel %s: %s messages, %s violations, %s msg/s",
            channel_id,
            summary.processed,
            summary.violations,
            summary.speed,
        )
        await self._notify(self._reporter.completed(channel_id, summary))

        max_bytes = self._config.report_max_bytes
        entries = [self._formatter.format_entry(record, max_bytes) for record in violations]
        chunks = chunk_report(
            entries,
            max_bytes,
            empty_message=self._formatter.no_violations(display_name),
        )
        await self._notify(self._reporter.report(channel_id, chunks))
        return BatchResult(summary=summary, violations=violations, chunks=chunks)

    async def _process(
        self,
        session: AnalysisSession,
        selected: list[Message],
        violations: list[ViolationRecord],
    ) -> bool:
        """Walk the batch; return True if it stopped on cancellation."""

        last_progress = session.started_at
        for index, message in enumerate(selected):
            try:
                session.token.raise_if_cancelled()
                reason = await self._detector.detect(message.text, session.token)
            except Cancelled:
                # processed stays at the count of fully handled messages.
                return True
            except Exception:
                LOGGER.exception(
                    "Failed to analyze message %s in channel %s",
                    index + 1,
                    session.channel_id,
                )
                reason = None

            if reason is not None:
                violations.append(
                    ViolationRecord(
                        ordinal=index + 1,
                        author=message.author,
                        reason_code=reason,
                        text=message.text,
                    )
                )
                LOGGER.debug(
                    "Violation %s in channel %s at message %s",
                    reason,
                    session.channel_id,
                    index + 1,
                )
            session.processed = index + 1

            now = self._clock()
            is_last = session.processed == session.total
            if is_last or now - last_progress >= self._config.progress_interval_seconds:
                last_progress = now
                progress = BatchProgress(
                    processed=session.processed,
                    total=session.total,
                    elapsed_seconds=self._elapsed(session),
                )
                await self._notify(self._reporter.progress(session.channel_id, progress))
        return False

    def _elapsed(self, session: AnalysisSession) -> int:
        return max(0, int(self._clock() - session.started_at))

    async def _notify(self, call: Awaitable[None]) -> None:
        # Output failures never abort the batch loop.
        try:
            await call
        except Exception:
            LOGGER.exception("Failed to deliver batch update")
