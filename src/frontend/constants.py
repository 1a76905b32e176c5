"""Shared constants for the Textual UI."""

from __future__ import annotations

from pathlib import Path

TELEGRAM_BLUE = "#2AABEE"
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Word categories in the order the filters check them.
WORD_CATEGORY_LABELS = (
    ("Profanity", "profanity"),
    ("Advertising", "advertising"),
    ("Custom", "custom"),
)
