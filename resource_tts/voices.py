"""Language to voice mapping used by the synthesizer."""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .core import ConfigurationError, VoiceConfig

_DEFAULT_VOICES: Dict[str, VoiceConfig] = {
    # Assamese is read with the Hindi voice.
    "as": VoiceConfig(language_code="as-IN", voice_name="hi-IN-Wavenet-A"),
    "bn": VoiceConfig(language_code="bn-IN", voice_name="bn-IN-Wavenet-A"),
    "gu": VoiceConfig(language_code="gu-IN", voice_name="gu-IN-Wavenet-A"),
    "hi": VoiceConfig(language_code="hi-IN", voice_name="hi-IN-Wavenet-A"),
    "kn": VoiceConfig(language_code="kn-IN", voice_name="kn-IN-Wavenet-A"),
    "ml": VoiceConfig(language_code="ml-IN", voice_name="ml-IN-Wavenet-A"),
    "mr": VoiceConfig(language_code="mr-IN", voice_name="mr-IN-Wavenet-A"),
    "pa": VoiceConfig(language_code="pa-IN", voice_name="pa-IN-Wavenet-A"),
    "ta": VoiceConfig(language_code="ta-IN", voice_name="ta-IN-Wavenet-A"),
    "te": VoiceConfig(language_code="te-IN", voice_name="te-IN-Standard-A"),
    "en": VoiceConfig(language_code="en-IN", voice_name="en-US-Wavenet-A"),
}

_DEFAULT_FALLBACK = VoiceConfig(language_code="en-IN", voice_name="en-IN-Wavenet-A")


class VoiceTable:
    """Immutable mapping from short language codes to voices.

    Unknown codes resolve to the fallback voice.  Build a modified copy with
    :meth:`with_overrides` instead of mutating a shared table.
    """

    def __init__(self, voices: Mapping[str, VoiceConfig], fallback: VoiceConfig = _DEFAULT_FALLBACK) -> None:
        self._voices = MappingProxyType(dict(voices))
        self._fallback = fallback

    @classmethod
    def default(cls) -> "VoiceTable":
        return cls(_DEFAULT_VOICES, _DEFAULT_FALLBACK)

    @property
    def fallback(self) -> VoiceConfig:
        return self._fallback

    def __contains__(self, language: object) -> bool:
        return language in self._voices

    def __len__(self) -> int:
        return len(self._voices)

    def resolve(self, language: str) -> VoiceConfig:
        return self._voices.get(language, self._fallback)

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "VoiceTable":
        """Return a new table with entries replaced from ``overrides``.

        Values may be :class:`VoiceConfig` instances or mappings with
        ``language_code``, ``voice_name`` and optional ``ssml_gender`` keys.
        The special key ``"*"`` replaces the fallback voice.
        """

        if not overrides:
            return self
        voices = dict(self._voices)
        fallback = self._fallback
        for language, value in overrides.items():
            voice = _coerce_voice(language, value)
            if language == "*":
                fallback = voice
            else:
                voices[language] = voice
        return VoiceTable(voices, fallback)


def _coerce_voice(language: str, value: Any) -> VoiceConfig:
    if isinstance(value, VoiceConfig):
        return value
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Voice override for '{language}' must be a mapping.")
    try:
        return VoiceConfig(**dict(value))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Voice override for '{language}' is invalid: {exc}") from exc
