"""Speech engine exports for resource_tts."""
from .base import EngineConfig, SpeechEngine
from .google import DEFAULT_BASE_URL, GoogleSpeechEngine

__all__ = [
    "DEFAULT_BASE_URL",
    "EngineConfig",
    "GoogleSpeechEngine",
    "SpeechEngine",
]
