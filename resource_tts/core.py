"""Core data structures and helpers for resource-tts.

This module provides the pydantic models that describe parsed resource
entries, artifact identities and voice selections.  It also ships the
exception hierarchy shared by every component, retry/backoff semantics for
talking to a speech engine, and a small HTTP client wrapper that engines
reuse.
"""
from __future__ import annotations

import hashlib
import json
import logging
import math
import random
import time
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar, Union

import httpx
from pydantic import BaseModel, ConfigDict, field_validator


_LOGGER = logging.getLogger(__name__)


class ResourceTTSError(RuntimeError):
    """Base class for all errors raised by resource-tts."""


class ConfigurationError(ResourceTTSError):
    """Raised when arguments or settings are unusable. Fatal before any I/O."""


class ResourceParseError(ResourceTTSError):
    """Raised when a resource file cannot be read or parsed."""

    def __init__(self, path: Optional[Path], message: str) -> None:
        self.path = path
        location = str(path) if path is not None else "<memory>"
        super().__init__(f"Failed to parse string resources in '{location}': {message}")


class SpeechEngineError(ResourceTTSError):
    """Raised by a speech engine when a request cannot be fulfilled."""


class TransientEngineError(SpeechEngineError):
    """Engine failure that is worth retrying (throttling, outages, timeouts)."""


class SynthesisError(ResourceTTSError):
    """Raised when an artifact cannot be produced. Aborts the run."""


class ImmutableModel(BaseModel):
    """Base class that freezes models."""

    model_config = ConfigDict(frozen=True)


class StringEntry(ImmutableModel):
    """A ``<string>`` resource with its markup-preserving value."""

    name: str
    raw_value: str
    translatable: bool = True

    @field_validator("name")
    @classmethod
    def _name_must_not_be_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("string entry name must not be empty")
        return value


class StringArrayEntry(ImmutableModel):
    """A ``<string-array>`` resource; items keep document order."""

    name: str
    items: Tuple[str, ...] = ()
    translatable: bool = True

    @field_validator("name")
    @classmethod
    def _name_must_not_be_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("string-array entry name must not be empty")
        return value

    def item_key(self, index: int) -> str:
        return f"{self.name}[{index}]"


class ParsedResourceSet(ImmutableModel):
    """Everything extracted from a single resource file."""

    source: Optional[Path] = None
    strings: Tuple[StringEntry, ...] = ()
    string_arrays: Tuple[StringArrayEntry, ...] = ()

    @property
    def entry_count(self) -> int:
        return len(self.strings) + sum(len(array.items) for array in self.string_arrays)


class SelectedText(ImmutableModel):
    """A piece of text chosen for synthesis, keyed for logging only."""

    key: str
    text: str


class ArtifactKey(ImmutableModel):
    """Content address of an artifact: the language plus an MD5 of the text."""

    language: str
    content_hash: str

    @classmethod
    def for_text(cls, text: str, language: str) -> "ArtifactKey":
        digest = hashlib.md5(text.encode("utf-8")).hexdigest()
        return cls(language=language, content_hash=digest)

    def file_name(self, prefix: str, extension: str = ".mp3") -> str:
        return f"{prefix}{self.content_hash}_{self.language}{extension}"


class VoiceConfig(ImmutableModel):
    """Voice selection sent to the speech engine."""

    language_code: str
    voice_name: str
    ssml_gender: str = "FEMALE"

    @field_validator("language_code", "voice_name")
    @classmethod
    def _must_not_be_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("voice fields must not be empty")
        return value.strip()


def safe_json(data: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """Parse JSON content without raising unexpected exceptions.

    Non-object payloads and undecodable content yield an empty dictionary so
    engines can report a missing field instead of a decoding traceback.
    """

    if isinstance(data, dict):
        return data
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        if not data:
            return {}
        loaded = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        _LOGGER.debug("failed to decode json payload", exc_info=True)
        return {}
    return loaded if isinstance(loaded, dict) else {}


_T = TypeVar("_T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retrying transient failures."""

    attempts: int = 3
    backoff_factor: float = 2.0
    min_backoff: float = 0.5
    max_backoff: float = 10.0
    jitter: float = 0.1
    retriable: Tuple[type, ...] = (TransientEngineError,)

    @classmethod
    def from_mapping(cls, settings: Optional[Dict[str, Any]]) -> "RetryConfig":
        settings = settings or {}
        try:
            return cls(
                attempts=max(1, int(settings.get("attempts", 3))),
                backoff_factor=float(settings.get("backoff_factor", 2.0)),
                min_backoff=float(settings.get("min_backoff", 0.5)),
                max_backoff=float(settings.get("max_backoff", 10.0)),
                jitter=float(settings.get("jitter", 0.1)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid retry settings: {exc}") from exc


def _sleep(duration: float) -> None:
    time.sleep(duration)


def with_retry(config: RetryConfig) -> Callable[[Callable[..., _T]], Callable[..., _T]]:
    """Decorator applying retry/backoff to a synchronous function."""

    def decorator(func: Callable[..., _T]) -> Callable[..., _T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> _T:
            last_error: Optional[Exception] = None
            for attempt in range(1, config.attempts + 1):
                try:
                    return func(*args, **kwargs)
                except config.retriable as error:  # type: ignore[misc]
                    last_error = error
                    if attempt == config.attempts:
                        raise
                    delay = _compute_backoff(config, attempt)
                    _LOGGER.debug("retrying %s in %.2fs", func.__name__, delay, exc_info=error)
                    _sleep(delay)
            assert last_error is not None  # pragma: no cover - for mypy only
            raise last_error

        return wrapper

    return decorator


def _compute_backoff(config: RetryConfig, attempt: int) -> float:
    base_delay = config.min_backoff * math.pow(config.backoff_factor, attempt - 1)
    if config.jitter:
        base_delay += random.uniform(0, config.jitter)
    return min(base_delay, config.max_backoff)


class SyncHttpClient:
    """Lazily opened ``httpx.Client`` that must be closed by its owner."""

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def post_json(self, url: str, *, headers: Optional[Dict[str, str]] = None,
                  params: Optional[Dict[str, Any]] = None, json_body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout, transport=self._transport)
        response = self._client.post(url, headers=headers, params=params, json=json_body)
        response.raise_for_status()
        return safe_json(response.content)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
