"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

ORACLE_MODES = ("verdict", "confidence", "auto")


@dataclass
class ModerationConfig:
    """Runtime switches flipped from the admin panel.

    One instance is owned by the bot service and shared by reference with the
    detector and the oracle gateway, so a toggle is visible on the next check.
    """

    filter_profanity: bool = True
    filter_advertising: bool = True
    use_oracle: bool = True
    delete_messages: bool = False
    current_model: str = ""

    def toggle(self, name: str) -> bool:
        """Flip a boolean switch by attribute name and return the new value."""

        value = getattr(self, name)
        if not isinstance(value, bool):
            raise ValueError(f"Not a toggle: {name}")
        setattr(self, name, not value)
        return not value


@dataclass(frozen=True)
class OracleConfig:
    """How oracle answers are turned into verdicts."""

    mode: str = "auto"
    confidence_threshold: float = 70.0
    yes_tokens: tuple[str, ...] = ("ДА", "YES")
    no_tokens: tuple[str, ...] = ("НЕТ", "NO")

    def __post_init__(self) -> None:
        if self.mode not in ORACLE_MODES:
            raise ValueError(f"Unsupported oracle mode: {self.mode}")


@dataclass(frozen=True)
class AnalysisConfig:
    """Batch analysis limits and pacing."""

    progress_interval_seconds: float = 1.0
    report_max_bytes: int = 4000
    warning_delete_seconds: float = 10.0
    # Very short messages never reach the oracle.
    min_oracle_chars: int = 4
    limit_choices: tuple[int, ...] = (500, 1000, 2000, 5000, 10000)
