# lyric-service/app/domain/fallback.py
import random
from typing import Optional, Sequence

FALLBACK_MESSAGES: Sequence[str] = (
    "Some feelings are still waiting for their song.",
    "Not every question has found its lyric yet.",
    "Even Taylor doesn't have words for everything.",
    "This one's still between the lines.",
    "Sometimes silence says more than lyrics can.",
)


class FallbackPicker:
    """Uniform pick from the fixed pool of on-brand non-answers."""

    def __init__(self, messages: Sequence[str] = FALLBACK_MESSAGES, rng: Optional[random.Random] = None):
        if not messages:
            raise ValueError("FallbackPicker needs at least one message.")
        self._messages = tuple(messages)
        self._rng = rng or random.Random()

    def pick(self) -> str:
        return self._rng.choice(self._messages)
