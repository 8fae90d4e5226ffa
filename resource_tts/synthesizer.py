"""Content-addressed synthesis: the output directory is the cache.

An artifact's file name is derived from the MD5 of the exact text sent to
the engine plus the language code, so the same text in the same language is
only ever synthesized once.  A file that already exists is trusted as-is.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .core import ArtifactKey, SynthesisError, VoiceConfig
from .engines.base import SpeechEngine
from .voices import VoiceTable

_LOGGER = logging.getLogger(__name__)

DEFAULT_PREFIX = "audio_"
MP3_EXTENSION = ".mp3"


@dataclass(frozen=True)
class SynthesisResult:
    """Where an artifact lives and whether it was already there."""

    path: Path
    key: ArtifactKey
    cached: bool


class ContentAddressedSynthesizer:
    """Resolve ``(text, language)`` pairs to audio files on disk.

    Args:
        engine: Speech engine used on cache misses.
        voices: Voice table consulted once per language code per instance.
        prefix: File name prefix of every artifact. A prefix keeps names from
            starting with a digit, which Android resource names forbid.
        extension: File extension of every artifact.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        voices: Optional[VoiceTable] = None,
        *,
        prefix: str = DEFAULT_PREFIX,
        extension: str = MP3_EXTENSION,
    ) -> None:
        self._engine = engine
        self._voices = voices or VoiceTable.default()
        self._prefix = prefix
        self._extension = extension
        self._voice_memo: Dict[str, VoiceConfig] = {}
        self._lock = threading.Lock()

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def extension(self) -> str:
        return self._extension

    def artifact_key(self, text: str, language: str) -> ArtifactKey:
        return ArtifactKey.for_text(text, language)

    def artifact_name(self, text: str, language: str) -> str:
        return self.artifact_key(text, language).file_name(self._prefix, self._extension)

    def artifact_path(self, text: str, language: str, directory: Path) -> Path:
        return Path(directory) / self.artifact_name(text, language)

    def voice_for(self, language: str) -> VoiceConfig:
        """Return the voice for ``language``, resolving it at most once."""

        voice = self._voice_memo.get(language)
        if voice is None:
            voice = self._voices.resolve(language)
            self._voice_memo[language] = voice
            _LOGGER.debug("voice for '%s': %s (%s)", language, voice.voice_name, voice.language_code)
        return voice

    def synthesize(self, text: str, language: str, directory: Path) -> Optional[SynthesisResult]:
        """Return the artifact for ``text``, calling the engine only on a miss.

        Whitespace-only text is skipped and ``None`` is returned.

        Raises:
            SynthesisError: If the engine fails or the audio cannot be written.
        """

        if not text.strip():
            _LOGGER.debug("empty value for language '%s' not synthesized", language)
            return None

        key = self.artifact_key(text, language)
        path = Path(directory) / key.file_name(self._prefix, self._extension)
        if path.exists():
            _LOGGER.debug("cache hit: %s", path)
            return SynthesisResult(path=path, key=key, cached=True)

        with self._lock:
            if path.exists():
                return SynthesisResult(path=path, key=key, cached=True)
            voice = self.voice_for(language)
            try:
                audio = self._engine.synthesize(text, voice)
            except Exception as exc:
                raise SynthesisError(f"Failed to synthesize text '{text}' ({language}): {exc}") from exc
            try:
                _write_atomically(path, audio)
            except OSError as exc:
                raise SynthesisError(f"Failed to write audio file '{path}': {exc}") from exc
        _LOGGER.info("Audio content written to: %s", path)
        return SynthesisResult(path=path, key=key, cached=False)


def _write_atomically(path: Path, data: bytes) -> None:
    """Write ``data`` next to ``path`` and rename it into place."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handle, temp_name = tempfile.mkstemp(prefix=".partial-", dir=str(path.parent))
    try:
        with os.fdopen(handle, "wb") as stream:
            stream.write(data)
        os.replace(temp_name, path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except OSError:
            pass
        raise
