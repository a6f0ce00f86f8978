from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, Sequence

from .model import RecognitionResult, Recognizer

logger = logging.getLogger(__name__)


class MockRecognizer(Recognizer):
    """Stand-in for the recognition service used in development and tests.

    Matches roughly `match_rate` of scans against a random enrolled student
    with a confidence between 0.7 and 1.0.
    """

    def __init__(
        self,
        *,
        delay_seconds: float = 1.0,
        match_rate: float = 0.8,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._delay = delay_seconds
        self._match_rate = match_rate
        self._rng = rng or random.Random()
        self._sleep = sleep

    def recognize(self, *, image_base64: str, device_id: str, candidates: Sequence[int]) -> RecognitionResult:
        if self._delay > 0:
            self._sleep(self._delay)

        confidence = round(self._rng.uniform(0.7, 1.0), 4)
        if not candidates or self._rng.random() >= self._match_rate:
            logger.debug("Mock recognition on %s: no match", device_id)
            return RecognitionResult(matched=False, confidence=confidence)

        subject_id = self._rng.choice(list(candidates))
        logger.debug("Mock recognition on %s: mahasiswa %s (%.4f)", device_id, subject_id, confidence)
        return RecognitionResult(
            matched=True,
            subject_id=subject_id,
            confidence=confidence,
            photo_url=f"/uploads/scans/{device_id}-{subject_id}.jpg",
        )
