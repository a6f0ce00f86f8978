from __future__ import annotations

from types import ModuleType

from .http_recognizer import HttpRecognizer
from .mock_recognizer import MockRecognizer
from .model import Recognizer


def build_recognizer(settings: ModuleType) -> Recognizer:
    backend = getattr(settings, "RECOGNITION_BACKEND", "mock")
    if backend == "http":
        endpoint = getattr(settings, "RECOGNITION_ENDPOINT", "")
        if not endpoint:
            raise RuntimeError("RECOGNITION_ENDPOINT must be set when RECOGNITION_BACKEND=http")
        return HttpRecognizer(
            endpoint,
            api_key=getattr(settings, "RECOGNITION_API_KEY", ""),
            timeout=getattr(settings, "RECOGNITION_TIMEOUT", 10.0),
            threshold=getattr(settings, "RECOGNITION_THRESHOLD", 0.7),
        )
    if backend == "mock":
        return MockRecognizer(delay_seconds=getattr(settings, "MOCK_RECOGNITION_DELAY", 1.0))
    raise RuntimeError(f"Unknown RECOGNITION_BACKEND: {backend!r}")
