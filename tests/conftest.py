"""Pytest configuration file for test suite setup.

This module ensures the project root is on sys.path and provides an
in-memory speech engine plus helpers for building resource trees.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import pytest


def ensure_project_root_on_path() -> None:
    """Add the project root directory to sys.path if not already present."""
    project_root = Path(__file__).resolve().parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


ensure_project_root_on_path()

from resource_tts.core import VoiceConfig  # noqa: E402
from resource_tts.engines.base import SpeechEngine  # noqa: E402


@dataclass
class EngineCall:
    ssml: str
    voice: VoiceConfig


class RecordingEngine(SpeechEngine):
    """Speech engine double that returns fake MP3 bytes and records calls."""

    name = "Recording"

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls: List[EngineCall] = []
        self.error = error
        self.close_count = 0

    def synthesize(self, ssml: str, voice: VoiceConfig) -> bytes:
        self.calls.append(EngineCall(ssml=ssml, voice=voice))
        if self.error is not None:
            raise self.error
        return b"ID3" + ssml.encode("utf-8")

    def close(self) -> None:
        self.close_count += 1

    @property
    def texts(self) -> List[str]:
        return [call.ssml for call in self.calls]


@pytest.fixture
def engine() -> RecordingEngine:
    return RecordingEngine()


def resources_xml(body: str) -> str:
    return f'<?xml version="1.0" encoding="utf-8"?>\n<resources>\n{body}\n</resources>\n'


@pytest.fixture
def write_resources() -> Callable[..., Path]:
    """Write ``<resources>`` XML below a folder and return the file path."""

    def _write(folder: Path, body: str, file_name: str = "strings.xml") -> Path:
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / file_name
        path.write_text(resources_xml(body), encoding="utf-8")
        return path

    return _write
