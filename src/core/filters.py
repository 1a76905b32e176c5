"""Word-list filters (core domain)."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from core.models import REASON_ADVERTISING, REASON_CUSTOM, REASON_PROFANITY
from core.ports import WORD_CATEGORIES

# Fallback order after the oracle chain; first hit wins.
CATEGORY_REASONS: tuple[tuple[str, str], ...] = (
    ("profanity", REASON_PROFANITY),
    ("advertising", REASON_ADVERTISING),
    ("custom", REASON_CUSTOM),
)


class RuleFilterSet:
    """Three substring word sets: profanity, advertising and custom-banned.

    Words are expected lowercase already; the store boundary normalizes them.
    Each replace builds a new mapping of frozensets and swaps the reference,
    so a reader always sees either the old or the new set, never a mix.
    """

    def __init__(self, initial: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._words: dict[str, frozenset[str]] = {name: frozenset() for name in WORD_CATEGORIES}
        for category, words in (initial or {}).items():
            self.replace(category, words)

    def replace(self, category: str, words: Iterable[str]) -> None:
        """Swap the active word set for one category."""

        if category not in WORD_CATEGORIES:
            raise ValueError(f"Unknown word category: {category}")
        updated = dict(self._words)
        updated[category] = frozenset(word for word in words if word)
        self._words = updated

    def test(self, category: str, lowered_text: str) -> bool:
        """Return True if any word of the category occurs in the text."""

        words = self._words.get(category)
        if words is None:
            raise ValueError(f"Unknown word category: {category}")
        return any(word in lowered_text for word in words)

    def words(self, category: str) -> frozenset[str]:
        return self._words[category]
