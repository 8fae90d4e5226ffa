"""Reconcile output directories with the artifacts a run actually needs.

Every output directory goes through three steps:

1. ``scan`` records each artifact already on disk as suspect.
2. ``confirm`` clears an artifact once the current run has asked for it.
3. ``prune`` deletes whatever is still suspect; those files are orphans left
   behind by renamed, removed or deselected strings.

A directory is scanned once even when several languages write into it, so
one language can never prune files another language still needs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Set

_LOGGER = logging.getLogger(__name__)


@dataclass
class PruneReport:
    """What happened when a directory's orphans were removed."""

    directory: Path
    deleted: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)


def _normalize(path: Path) -> Path:
    return Path(path).resolve()


class DirectorySynchronizer:
    """Tracks the LiveSet of every output directory touched by a run."""

    def __init__(self, prefix: str, extension: str) -> None:
        self._prefix = prefix
        self._extension = extension
        self._live_sets: Dict[Path, Set[Path]] = {}

    def is_artifact_name(self, name: str) -> bool:
        return name.startswith(self._prefix) and name.endswith(self._extension)

    def is_scanned(self, directory: Path) -> bool:
        return _normalize(directory) in self._live_sets

    def scan(self, directory: Path) -> int:
        """Snapshot the artifacts under ``directory``.

        Returns the number of artifacts found.  Scanning a directory that is
        already tracked leaves its LiveSet untouched.
        """

        root = _normalize(directory)
        if root in self._live_sets:
            return len(self._live_sets[root])
        found: Set[Path] = set()
        if root.is_dir():
            # The prefix is user input and may hold glob metacharacters.
            for candidate in root.rglob("*"):
                if candidate.is_file() and self.is_artifact_name(candidate.name):
                    found.add(candidate)
        self._live_sets[root] = found
        _LOGGER.debug("found %d existing artifacts in %s", len(found), root)
        return len(found)

    def confirm(self, path: Path) -> bool:
        """Mark ``path`` as wanted. Returns ``True`` if it was being tracked."""

        artifact = _normalize(path)
        live_set = self._live_sets.get(artifact.parent)
        if live_set is not None and artifact in live_set:
            live_set.discard(artifact)
            return True
        for candidates in self._live_sets.values():
            if artifact in candidates:
                candidates.discard(artifact)
                return True
        return False

    def pending(self, directory: Path) -> FrozenSet[Path]:
        """Artifacts in ``directory`` not confirmed so far."""

        return frozenset(self._live_sets.get(_normalize(directory), ()))

    def discard(self, directory: Path) -> None:
        """Forget ``directory`` without deleting anything."""

        self._live_sets.pop(_normalize(directory), None)

    def prune(self, directory: Path) -> PruneReport:
        """Delete every unconfirmed artifact in ``directory`` and forget it.

        Deletion failures are logged and reported; they never raise.
        """

        root = _normalize(directory)
        report = PruneReport(directory=root)
        for stale in sorted(self._live_sets.pop(root, set())):
            try:
                stale.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                _LOGGER.warning("Failed to delete unused file: %s. Error: %s", stale, exc)
                report.failed.append(stale)
                continue
            _LOGGER.info("Deleted unused audio file: %s", stale)
            report.deleted.append(stale)
        return report
