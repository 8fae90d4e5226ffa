"""Run settings for resource-tts.

Settings are resolved in the following order, first match wins:

1. Values given on the command line.
2. A YAML/JSON file passed with ``--config`` or referenced via the
   ``RESOURCE_TTS_CONFIG`` environment variable.
3. Environment variables for the speech engine.
4. Built-in defaults.

The configuration file supports the shape::

    prefix: audio_
    default_language: en
    unescape: false
    voices:
      hi: {language_code: hi-IN, voice_name: hi-IN-Wavenet-B}
      "*": {language_code: en-IN, voice_name: en-IN-Wavenet-C}
    engine:
      api_key: ${GOOGLE_API_KEY}
      timeout: 60
      extra_headers:
        X-Goog-User-Project: my-project
      retry:
        attempts: 5
        min_backoff: 1.0

Environment variables:

``GOOGLE_TTS_API_KEY`` or ``GOOGLE_API_KEY``
    API key for Google Cloud Text-to-Speech.
``GOOGLE_ACCESS_TOKEN``
    OAuth bearer token, used instead of an API key when present.
``GOOGLE_TTS_BASE_URL``
    Overrides ``https://texttospeech.googleapis.com``.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import Field, ValidationError, field_validator

from .core import ConfigurationError, ImmutableModel, RetryConfig
from .engines.base import EngineConfig
from .engines.google import DEFAULT_BASE_URL
from .layout import DEFAULT_LANGUAGE
from .synthesizer import DEFAULT_PREFIX

CONFIG_ENV_VAR = "RESOURCE_TTS_CONFIG"


class RetrySettings(ImmutableModel):
    """Backoff applied to transient engine failures."""

    attempts: int = Field(default=3, ge=1)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    min_backoff: float = Field(default=0.5, ge=0.0)
    max_backoff: float = Field(default=10.0, ge=0.0)
    jitter: float = Field(default=0.1, ge=0.0)


class EngineSettings(ImmutableModel):
    """Speech engine connection settings."""

    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    access_token: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0.0)
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @field_validator("api_key", "access_token")
    @classmethod
    def _blank_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    def to_engine_config(self) -> EngineConfig:
        return EngineConfig(
            base_url=self.base_url,
            api_key=self.api_key,
            access_token=self.access_token,
            extra_headers=dict(self.extra_headers) or None,
            timeout=self.timeout,
            retry=RetryConfig.from_mapping(self.retry.model_dump()),
        )


class Settings(ImmutableModel):
    """Everything a synchronization run needs."""

    input_root: Path
    patterns: str
    output: str
    prefix: str = DEFAULT_PREFIX
    default_language: str = DEFAULT_LANGUAGE
    unescape: bool = False
    voices: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    engine: EngineSettings = Field(default_factory=EngineSettings)

    @field_validator("patterns", "output", "prefix", "default_language")
    @classmethod
    def _must_not_be_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value


def _expand_env(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, str):
        return os.path.expandvars(value)
    return value


def load_config_file(path: Path) -> Dict[str, Any]:
    """Load a JSON or YAML configuration file and expand ``${VAR}`` references."""

    if not path.is_file():
        raise ConfigurationError(f"Configuration file '{path}' was not found.")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Failed to read configuration file '{path}': {exc}") from exc
    if not text.strip():
        return {}
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            loaded = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse configuration YAML: {exc}") from exc
    else:
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Failed to parse configuration JSON: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigurationError("Configuration root must be a mapping.")
    return _expand_env(loaded)


def resolve_config_path(explicit: Optional[Path], environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    if explicit is not None:
        return explicit
    env = os.environ if environ is None else environ
    configured = env.get(CONFIG_ENV_VAR)
    return Path(configured) if configured else None


def engine_settings_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    settings: Dict[str, Any] = {}
    api_key = env.get("GOOGLE_TTS_API_KEY") or env.get("GOOGLE_API_KEY")
    if api_key:
        settings["api_key"] = api_key
    access_token = env.get("GOOGLE_ACCESS_TOKEN")
    if access_token:
        settings["access_token"] = access_token
    base_url = env.get("GOOGLE_TTS_BASE_URL")
    if base_url:
        settings["base_url"] = base_url
    return settings


def build_settings(
    *,
    input_root: Path,
    patterns: str,
    output: str,
    prefix: Optional[str] = None,
    config_path: Optional[Path] = None,
    voices_path: Optional[Path] = None,
    default_language: Optional[str] = None,
    unescape: Optional[bool] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Merge command line values, the config file and the environment.

    Raises:
        ConfigurationError: If any source is unreadable or a value is invalid.
    """

    path = resolve_config_path(config_path, environ)
    file_data = load_config_file(path) if path is not None else {}

    engine_data: Dict[str, Any] = engine_settings_from_env(environ)
    file_engine = file_data.get("engine") or {}
    if not isinstance(file_engine, dict):
        raise ConfigurationError("The 'engine' section must be a mapping.")
    engine_data.update({key: value for key, value in file_engine.items() if value is not None})

    file_voices = file_data.get("voices") or {}
    if not isinstance(file_voices, dict):
        raise ConfigurationError("The 'voices' section must be a mapping.")
    voices: Dict[str, Any] = dict(file_voices)
    if voices_path is not None:
        voices.update(load_config_file(voices_path))

    data: Dict[str, Any] = {
        "input_root": input_root,
        "patterns": patterns,
        "output": output,
        "voices": voices,
        "engine": engine_data,
    }
    for key, value in (
        ("prefix", prefix if prefix is not None else file_data.get("prefix")),
        ("default_language", default_language if default_language is not None else file_data.get("default_language")),
        ("unescape", unescape if unescape is not None else file_data.get("unescape")),
    ):
        if value is not None:
            data[key] = value

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
