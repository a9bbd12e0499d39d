"""Text-to-speech collaborator used by quest authoring."""
from __future__ import annotations

import logging

import requests
from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class SpeechSynthesisError(Exception):
    """Raised when the TTS service cannot produce audio."""


class HttpSpeechSynthesizer:
    """Posts ``{"text", "voice"}`` to a TTS server and returns the WAV body."""

    def __init__(self, url: str, timeout: float = 60.0) -> None:
        self._url = url
        self._timeout = timeout

    def synthesize(self, text: str, *, voice: str) -> bytes:
        cleaned = text.strip()
        if not cleaned:
            raise SpeechSynthesisError("cannot synthesize empty text")

        try:
            response = requests.post(
                self._url,
                json={"text": cleaned, "voice": voice},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise SpeechSynthesisError(f"TTS request failed: {exc}") from exc

        if response.status_code != 200:
            raise SpeechSynthesisError(f"TTS error {response.status_code}: {response.text[:200]}")
        if not response.content:
            raise SpeechSynthesisError("TTS returned no audio")

        logger.debug("Synthesized %d bytes for voice %s", len(response.content), voice)
        return response.content


def get_synthesizer():
    """Build the synthesizer configured in ``settings.LANGQUEST_TTS``."""
    options = dict(settings.LANGQUEST_TTS)
    backend = import_string(options.pop("BACKEND"))
    return backend(url=options.get("URL"), timeout=options.get("TIMEOUT", 60.0))
