"""Speech engine abstractions for resource-tts."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import TracebackType
from typing import Dict, Optional, Type

from ..core import RetryConfig, VoiceConfig


@dataclass(frozen=True)
class EngineConfig:
    """Connection settings shared by concrete engines."""

    base_url: str
    api_key: Optional[str] = None
    access_token: Optional[str] = None
    extra_headers: Optional[Dict[str, str]] = None
    timeout: float = 30.0
    audio_encoding: str = "MP3"
    retry: RetryConfig = field(default_factory=RetryConfig)


class SpeechEngine(ABC):
    """Turns SSML into encoded audio bytes.

    Engines hold network resources and are used as context managers so that
    :meth:`close` runs on every exit path.
    """

    name: str

    @abstractmethod
    def synthesize(self, ssml: str, voice: VoiceConfig) -> bytes:
        """Return encoded audio for ``ssml`` spoken with ``voice``."""

    def close(self) -> None:
        """Release any held resources. Safe to call more than once."""

    def __enter__(self) -> "SpeechEngine":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()
