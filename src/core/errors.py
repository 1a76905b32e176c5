"""Domain errors raised by the moderation core.

Adapters translate library-specific failures into these types at the
boundary so the core never branches on httpx or Telethon exceptions.
"""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for every error the core raises on purpose."""


class AlreadyRunning(ModerationError):
    """A batch is already active for this channel."""

    def __init__(self, channel_id: int) -> None:
        super().__init__(f"Analysis already running for channel {channel_id}")
        self.channel_id = channel_id


class Cancelled(ModerationError):
    """Cooperative cancellation was observed."""


class OracleUnavailable(ModerationError):
    """A single classification call failed (timeout, network, bad payload)."""


class MalformedOracleResponse(OracleUnavailable):
    """The oracle answered but no verdict could be recovered from it."""


class NotFound(ModerationError):
    """A registry entry with the requested name does not exist."""


class DuplicateTopic(ModerationError):
    """A topic with the same name is already registered."""


class PlatformSendFailure(ModerationError):
    """A chat-platform call (send, edit, delete, forward) failed."""
