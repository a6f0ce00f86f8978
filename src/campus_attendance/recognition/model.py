from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence


@dataclass(frozen=True)
class RecognitionResult:
    matched: bool
    subject_id: Optional[int] = None
    confidence: float = 0.0
    photo_url: Optional[str] = None


class Recognizer(Protocol):
    def recognize(self, *, image_base64: str, device_id: str, candidates: Sequence[int]) -> RecognitionResult:
        """Identify the face in `image_base64`.

        `candidates` are the mahasiswa ids enrolled in the session's class; a
        backend may use them to narrow its search or ignore them. Raises
        ServiceUnavailableError when the backend cannot be reached.
        """
        raise NotImplementedError
