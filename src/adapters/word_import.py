"""Bulk word list import for the ``import-words`` command."""

from __future__ import annotations

import re
from typing import Iterable, Mapping

from adapters.sqlite_storage import SQLiteStorage

WORD_RE = re.compile(r"\b[A-Za-zА-Яа-яЁё0-9-]{2,}\b")

# Environment variables holding comma separated seed lists.
ENV_LISTS = {
    "profanity": "PROFANITY_WORDS",
    "advertising": "AD_KEYWORDS",
}


def split_word_list(raw: str) -> list[str]:
    """Split a comma separated list, dropping blanks."""

    return [word.strip().lower() for word in raw.split(",") if word.strip()]


def extract_words(text: str) -> list[str]:
    """Pull every word of two or more characters out of free text."""

    return [match.lower() for match in WORD_RE.findall(text)]


def words_from_env(environ: Mapping[str, str]) -> dict[str, list[str]]:
    return {category: split_word_list(environ.get(name, "")) for category, name in ENV_LISTS.items()}


def import_words(storage: SQLiteStorage, batches: Mapping[str, Iterable[str]]) -> dict[str, int]:
    """Insert each category's words and return how many were new per category."""

    return {category: storage.add_words(category, words) for category, words in batches.items()}
