"""Keep per-language speech audio in sync with localized string resources.

A run walks an input tree of ``values``/``values-<lang>``/``res-<lang>``
folders, picks the ``<string>`` and ``<string-array>`` entries whose names
match the configured patterns, and makes sure each selected text has an MP3
named ``<prefix><md5>_<lang>.mp3`` in that language's output folder.  Audio
that already exists is reused without calling the speech engine, and audio
no selected text maps to any more is deleted.

Typical use::

    from pathlib import Path

    from resource_tts import build_settings, run_sync

    settings = build_settings(
        input_root=Path("app/src/main/res"),
        patterns="^tip_.*;^catalog_.*",
        output="app/src/main/res/raw-%1$s",
        prefix="audio_",
    )
    report = run_sync(settings)
"""
from __future__ import annotations

from .config import Settings, build_settings
from .core import (
    ArtifactKey,
    ConfigurationError,
    ParsedResourceSet,
    ResourceParseError,
    ResourceTTSError,
    SpeechEngineError,
    StringArrayEntry,
    StringEntry,
    SynthesisError,
    VoiceConfig,
)
from .extractor import parse_resource_file, parse_resource_text
from .pipeline import RunReport, run_sync
from .selector import Selector
from .sync import DirectorySynchronizer
from .synthesizer import ContentAddressedSynthesizer, SynthesisResult
from .voices import VoiceTable

__all__ = [
    "ArtifactKey",
    "ConfigurationError",
    "ContentAddressedSynthesizer",
    "DirectorySynchronizer",
    "ParsedResourceSet",
    "ResourceParseError",
    "ResourceTTSError",
    "RunReport",
    "Selector",
    "Settings",
    "SpeechEngineError",
    "StringArrayEntry",
    "StringEntry",
    "SynthesisError",
    "SynthesisResult",
    "VoiceConfig",
    "VoiceTable",
    "build_settings",
    "parse_resource_file",
    "parse_resource_text",
    "run_sync",
]
