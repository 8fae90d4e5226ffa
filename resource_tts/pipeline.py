"""One synchronization run over a resource tree."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List

from .config import Settings
from .core import ResourceParseError
from .engines.base import SpeechEngine
from .engines.google import GoogleSpeechEngine
from .extractor import parse_resource_file
from .layout import (
    LanguagePartition,
    discover_partitions,
    ensure_directory,
    resolve_output_directory,
    resource_files,
)
from .selector import Selector
from .sync import DirectorySynchronizer
from .synthesizer import ContentAddressedSynthesizer
from .voices import VoiceTable

_LOGGER = logging.getLogger(__name__)

EngineFactory = Callable[[Settings], SpeechEngine]


@dataclass
class RunReport:
    """Counters describing what a run did."""

    partitions: int = 0
    files_parsed: int = 0
    parse_errors: int = 0
    synthesized: int = 0
    cache_hits: int = 0
    skipped_empty: int = 0
    pruned: int = 0
    prune_errors: int = 0
    skipped_prune_directories: List[Path] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"{self.partitions} language folder(s), {self.files_parsed} file(s) parsed, "
            f"{self.synthesized} synthesized, {self.cache_hits} cached, "
            f"{self.skipped_empty} empty, {self.pruned} pruned, "
            f"{self.parse_errors} parse error(s), {self.prune_errors} prune error(s)"
        )


def create_engine(settings: Settings) -> SpeechEngine:
    return GoogleSpeechEngine(settings.engine.to_engine_config())


def group_by_output_directory(partitions: List[LanguagePartition], output: str) -> Dict[Path, List[LanguagePartition]]:
    """Bucket partitions by the directory their artifacts go to, keeping order.

    Directories are compared after resolving symlinks and ``..`` so that two
    spellings of one folder share a single group.
    """

    groups: Dict[Path, List[LanguagePartition]] = {}
    for partition in partitions:
        directory = resolve_output_directory(output, partition.language).resolve()
        groups.setdefault(directory, []).append(partition)
    return groups


class SyncRun:
    """Drives the extractor, selector, synthesizer and synchronizer."""

    def __init__(
        self,
        settings: Settings,
        selector: Selector,
        synthesizer: ContentAddressedSynthesizer,
        synchronizer: DirectorySynchronizer,
    ) -> None:
        self._settings = settings
        self._selector = selector
        self._synthesizer = synthesizer
        self._synchronizer = synchronizer
        self.report = RunReport()

    def process_directory(self, directory: Path, partitions: List[LanguagePartition]) -> None:
        """Bring one output directory in line with every partition feeding it."""

        _LOGGER.info("Current output folder is '%s'", directory)
        ensure_directory(directory)
        self._synchronizer.scan(directory)

        complete = True
        for partition in partitions:
            complete = self.process_partition(partition, directory) and complete

        if not complete:
            # Artifacts of unreadable files were never confirmed; keep them.
            _LOGGER.warning("Not pruning '%s' because some resource files could not be parsed", directory)
            self._synchronizer.discard(directory)
            self.report.skipped_prune_directories.append(directory)
            return

        pruned = self._synchronizer.prune(directory)
        self.report.pruned += len(pruned.deleted)
        self.report.prune_errors += len(pruned.failed)

    def process_partition(self, partition: LanguagePartition, directory: Path) -> bool:
        """Synthesize everything one language folder asks for.

        Returns ``False`` when at least one resource file had to be skipped.
        """

        _LOGGER.info("Current input folder is '%s' (language '%s')", partition.directory, partition.language)
        self.report.partitions += 1
        complete = True
        for file_path in resource_files(partition.directory):
            _LOGGER.info("Parsing input file '%s'", file_path)
            try:
                parsed = parse_resource_file(file_path, unescape=self._settings.unescape)
            except ResourceParseError as exc:
                _LOGGER.error("%s", exc)
                self.report.parse_errors += 1
                complete = False
                continue
            self.report.files_parsed += 1
            _LOGGER.debug("%d entries in '%s'", parsed.entry_count, file_path)
            for selected in self._selector.select(parsed):
                result = self._synthesizer.synthesize(selected.text, partition.language, directory)
                if result is None:
                    _LOGGER.info("Skipping empty value for: %s", selected.key)
                    self.report.skipped_empty += 1
                    continue
                if result.cached:
                    self.report.cache_hits += 1
                else:
                    self.report.synthesized += 1
                self._synchronizer.confirm(result.path)
        return complete


def run_sync(settings: Settings, engine_factory: EngineFactory = create_engine) -> RunReport:
    """Synchronize every output directory with the resource tree.

    Configuration problems surface before any file is written.  The speech
    engine is opened once and closed on every exit path.

    Raises:
        ConfigurationError: If the patterns or input folder are unusable.
        SynthesisError: If any artifact cannot be produced.
    """

    selector = Selector.from_config(settings.patterns)
    partitions = discover_partitions(settings.input_root, default_language=settings.default_language)
    if not partitions:
        _LOGGER.warning("No language folders found under '%s'", settings.input_root)
    voices = VoiceTable.default().with_overrides(settings.voices)
    groups = group_by_output_directory(partitions, settings.output)

    with engine_factory(settings) as engine:
        synthesizer = ContentAddressedSynthesizer(engine, voices, prefix=settings.prefix)
        synchronizer = DirectorySynchronizer(synthesizer.prefix, synthesizer.extension)
        run = SyncRun(settings, selector, synthesizer, synchronizer)
        for directory, members in groups.items():
            run.process_directory(directory, members)
    _LOGGER.info("Done: %s", run.report.summary())
    return run.report
