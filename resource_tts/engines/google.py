"""Google Cloud Text-to-Speech engine adapter (REST v1)."""
from __future__ import annotations

import base64
import binascii
from typing import Any, Dict

import httpx

from ..core import (
    ConfigurationError,
    SpeechEngineError,
    SyncHttpClient,
    TransientEngineError,
    VoiceConfig,
    with_retry,
)
from ..messages import MISSING_CREDENTIALS_MESSAGE
from .base import EngineConfig, SpeechEngine

DEFAULT_BASE_URL = "https://texttospeech.googleapis.com"


class GoogleSpeechEngine(SpeechEngine):
    name = "GoogleTTS"

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._client = SyncHttpClient(timeout=config.timeout)

    def require_credentials(self) -> None:
        if not self._config.api_key and not self._config.access_token:
            raise ConfigurationError(MISSING_CREDENTIALS_MESSAGE)

    def endpoint(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/v1/text:synthesize"

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json; charset=utf-8"}
        if self._config.access_token:
            headers["Authorization"] = f"Bearer {self._config.access_token}"
        if self._config.extra_headers:
            headers.update(self._config.extra_headers)
        return headers

    def params(self) -> Dict[str, str]:
        if self._config.api_key and not self._config.access_token:
            return {"key": self._config.api_key}
        return {}

    def build_payload(self, ssml: str, voice: VoiceConfig) -> Dict[str, Any]:
        return {
            "input": {"ssml": ssml},
            "voice": {
                "languageCode": voice.language_code,
                "name": voice.voice_name,
                "ssmlGender": voice.ssml_gender,
            },
            "audioConfig": {"audioEncoding": self._config.audio_encoding},
        }

    def synthesize(self, ssml: str, voice: VoiceConfig) -> bytes:
        self.require_credentials()
        payload = self.build_payload(ssml, voice)
        call = with_retry(self._config.retry)(self._post)
        response = call(payload)
        encoded = str(response.get("audioContent") or "").strip()
        if not encoded:
            raise SpeechEngineError(f"{self.name} response did not contain audioContent")
        try:
            return base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise SpeechEngineError(f"{self.name} returned undecodable audioContent") from exc

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self._client.post_json(
                self.endpoint(),
                headers=self.headers(),
                params=self.params(),
                json_body=payload,
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = f"{self.name} returned HTTP {status}: {exc.response.text[:500]}"
            if status == 429 or status >= 500:
                raise TransientEngineError(message) from exc
            raise SpeechEngineError(message) from exc
        except httpx.TransportError as exc:
            raise TransientEngineError(f"{self.name} request failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()
