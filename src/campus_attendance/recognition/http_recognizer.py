from __future__ import annotations

import logging
from typing import Optional, Sequence

import requests

from ..core.exceptions import ServiceUnavailableError
from .model import RecognitionResult, Recognizer

logger = logging.getLogger(__name__)


class HttpRecognizer(Recognizer):
    """Client for an external face recognition service.

    POSTs `{image, device_id, threshold}` and expects
    `{success, mahasiswa_id, confidence, foto_url}` back.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str = "",
        timeout: float = 10.0,
        threshold: float = 0.7,
        session: Optional[requests.Session] = None,
    ):
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._threshold = threshold
        self._session = session or requests.Session()

    def recognize(self, *, image_base64: str, device_id: str, candidates: Sequence[int]) -> RecognitionResult:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = {"image": image_base64, "device_id": device_id, "threshold": self._threshold}

        try:
            response = self._session.post(self._endpoint, json=payload, headers=headers, timeout=self._timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Face recognition request failed for device %s: %s", device_id, e)
            raise ServiceUnavailableError("Face recognition service unavailable") from e

        confidence = float(body.get("confidence") or 0.0)
        subject_id = body.get("mahasiswa_id")
        if not body.get("success") or subject_id is None:
            return RecognitionResult(matched=False, confidence=confidence)
        return RecognitionResult(
            matched=True,
            subject_id=int(subject_id),
            confidence=confidence,
            photo_url=body.get("foto_url"),
        )
