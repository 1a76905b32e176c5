"""Detection chain shared by batch analysis and live moderation.

Order is fixed: oracle topics first (when enabled and the text is long
enough), then word filters profanity -> advertising -> custom. The first
hit decides the reason code.
"""

from __future__ import annotations

from typing import Optional

from core.cancellation import CancelToken
from core.classifier import SequentialClassifier
from core.config import ModerationConfig
from core.filters import CATEGORY_REASONS, RuleFilterSet


class ViolationDetector:
    def __init__(
        self,
        classifier: SequentialClassifier,
        filters: RuleFilterSet,
        settings: ModerationConfig,
        min_oracle_chars: int = 4,
    ) -> None:
        self._classifier = classifier
        self._filters = filters
        self._settings = settings
        self._min_oracle_chars = min_oracle_chars

    async def detect(self, text: str, token: CancelToken) -> Optional[str]:
        """Return the reason code for ``text`` or None when it is clean.

        Raises Cancelled if the token is cancelled during the oracle chain.
        """

        lowered = text.lower()
        if self._settings.use_oracle and len(lowered) >= self._min_oracle_chars:
            result = await self._classifier.classify(lowered, token)
            if result is not None:
                return result.reason_code
        return self.check_rules(lowered)

    def check_rules(self, lowered: str) -> Optional[str]:
        for category, reason in CATEGORY_REASONS:
            if category == "profanity" and not self._settings.filter_profanity:
                continue
            if category == "advertising" and not self._settings.filter_advertising:
                continue
            if self._filters.test(category, lowered):
                return reason
        return None
