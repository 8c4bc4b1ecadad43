from __future__ import annotations

import logging
from typing import Iterable

from better_profanity import Profanity

log = logging.getLogger("flowerbot.content_filter")


class ContentFilter:
    """Flags profanity in free text.

    better-profanity expands each listed word into its leetspeak and
    character-substitution variants, so "sh1t" and "$hit" match as well.
    """

    def __init__(self, extra_words: Iterable[str] = ()) -> None:
        self._profanity = Profanity()
        self._profanity.load_censor_words()
        extra = [w.strip().lower() for w in extra_words if w and w.strip()]
        if extra:
            self._profanity.add_censor_words(extra)
            log.info("Content filter loaded %d extra word(s)", len(extra))

    def is_inappropriate(self, text: str | None) -> bool:
        if not text or not text.strip():
            return False
        return bool(self._profanity.contains_profanity(text))
