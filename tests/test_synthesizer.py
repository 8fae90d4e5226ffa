from __future__ import annotations

from pathlib import Path

import pytest

from conftest import RecordingEngine
from resource_tts.core import SpeechEngineError, SynthesisError, VoiceConfig
from resource_tts.synthesizer import ContentAddressedSynthesizer
from resource_tts.voices import VoiceTable

HELLO_MD5 = "5d41402abc4b2a76b9719d911017c592"


def test_artifact_name_is_prefix_hash_and_language(engine):
    synthesizer = ContentAddressedSynthesizer(engine, prefix="audio_")

    assert synthesizer.artifact_name("hello", "hi") == f"audio_{HELLO_MD5}_hi.mp3"
    assert synthesizer.artifact_path("hello", "hi", Path("out")) == Path("out") / f"audio_{HELLO_MD5}_hi.mp3"


def test_miss_calls_engine_and_writes_audio(engine, tmp_path: Path):
    synthesizer = ContentAddressedSynthesizer(engine)

    result = synthesizer.synthesize("hello", "hi", tmp_path)

    assert result is not None
    assert result.cached is False
    assert result.path == tmp_path / f"audio_{HELLO_MD5}_hi.mp3"
    assert result.path.read_bytes() == b"ID3hello"
    assert engine.calls[0].voice.voice_name == "hi-IN-Wavenet-A"
    assert engine.calls[0].voice.language_code == "hi-IN"
    assert [p.name for p in tmp_path.iterdir()] == [result.path.name]


def test_existing_artifact_short_circuits_engine(engine, tmp_path: Path):
    synthesizer = ContentAddressedSynthesizer(engine)
    synthesizer.synthesize("hello", "hi", tmp_path)

    again = synthesizer.synthesize("hello", "hi", tmp_path)

    assert again is not None and again.cached is True
    assert len(engine.calls) == 1


def test_existing_file_is_trusted_without_validation(engine, tmp_path: Path):
    synthesizer = ContentAddressedSynthesizer(engine)
    garbage = tmp_path / synthesizer.artifact_name("hello", "en")
    garbage.write_bytes(b"not audio")

    result = synthesizer.synthesize("hello", "en", tmp_path)

    assert result is not None and result.cached
    assert garbage.read_bytes() == b"not audio"
    assert engine.calls == []


@pytest.mark.parametrize("text", ["", "   ", "\n\t "])
def test_blank_text_is_skipped(engine, tmp_path: Path, text):
    synthesizer = ContentAddressedSynthesizer(engine)

    assert synthesizer.synthesize(text, "hi", tmp_path) is None
    assert engine.calls == []
    assert list(tmp_path.iterdir()) == []


def test_hash_covers_untrimmed_text(engine, tmp_path: Path):
    synthesizer = ContentAddressedSynthesizer(engine)

    padded = synthesizer.synthesize(" hello ", "hi", tmp_path)
    plain = synthesizer.synthesize("hello", "hi", tmp_path)

    assert padded.path != plain.path
    assert engine.texts == [" hello ", "hello"]


def test_same_text_in_different_languages_is_distinct(engine, tmp_path: Path):
    synthesizer = ContentAddressedSynthesizer(engine)

    hindi = synthesizer.synthesize("hello", "hi", tmp_path)
    tamil = synthesizer.synthesize("hello", "ta", tmp_path)

    assert hindi.key.content_hash == tamil.key.content_hash
    assert hindi.path != tamil.path
    assert tamil.path.name.endswith("_ta.mp3")


def test_voice_is_resolved_once_per_language(engine, tmp_path: Path):
    class CountingTable(VoiceTable):
        lookups = 0

        def resolve(self, language):
            CountingTable.lookups += 1
            return super().resolve(language)

    table = CountingTable({"hi": VoiceConfig(language_code="hi-IN", voice_name="hi-IN-Wavenet-B")})
    synthesizer = ContentAddressedSynthesizer(engine, table)

    synthesizer.synthesize("one", "hi", tmp_path)
    synthesizer.synthesize("two", "hi", tmp_path)
    synthesizer.synthesize("three", "zz", tmp_path)

    assert CountingTable.lookups == 2
    assert [call.voice.voice_name for call in engine.calls] == [
        "hi-IN-Wavenet-B",
        "hi-IN-Wavenet-B",
        "en-IN-Wavenet-A",
    ]


def test_engine_failure_raises_synthesis_error_and_leaves_nothing(tmp_path: Path):
    engine = RecordingEngine(error=SpeechEngineError("quota exceeded"))
    synthesizer = ContentAddressedSynthesizer(engine)

    with pytest.raises(SynthesisError, match="quota exceeded"):
        synthesizer.synthesize("hello", "hi", tmp_path)

    assert list(tmp_path.iterdir()) == []


def test_unexpected_engine_exception_is_wrapped(tmp_path: Path):
    synthesizer = ContentAddressedSynthesizer(RecordingEngine(error=ValueError("boom")))

    with pytest.raises(SynthesisError) as excinfo:
        synthesizer.synthesize("hello", "hi", tmp_path)

    assert isinstance(excinfo.value.__cause__, ValueError)


def test_unwritable_directory_raises_synthesis_error(engine, tmp_path: Path):
    blocker = tmp_path / "raw-hi"
    blocker.write_text("a file where a folder should be", encoding="utf-8")
    synthesizer = ContentAddressedSynthesizer(engine)

    with pytest.raises(SynthesisError, match="Failed to write"):
        synthesizer.synthesize("hello", "hi", blocker)


def test_failed_write_removes_partial_file(engine, tmp_path: Path, monkeypatch):
    def _fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("resource_tts.synthesizer.os.replace", _fail_replace)
    synthesizer = ContentAddressedSynthesizer(engine)

    with pytest.raises(SynthesisError, match="disk full"):
        synthesizer.synthesize("hello", "hi", tmp_path)

    assert list(tmp_path.iterdir()) == []
