"""Name-based selection of resource entries."""
from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator, List, Optional, Pattern, Sequence

from .core import ConfigurationError, ParsedResourceSet, SelectedText

_LOGGER = logging.getLogger(__name__)

PATTERN_DELIMITER = ";"


class Selector:
    """Ordered list of regular expressions that entry names must fully match.

    Patterns are tried in order and the first one that matches wins; later
    patterns are never evaluated for that name.
    """

    def __init__(self, patterns: Sequence[Pattern[str]]) -> None:
        if not patterns:
            raise ConfigurationError("At least one selection pattern is required.")
        self._patterns = tuple(patterns)

    @classmethod
    def from_config(cls, text: str, delimiter: str = PATTERN_DELIMITER) -> "Selector":
        """Compile a delimiter-separated pattern list such as ``^tip_.*;^catalog_.*``.

        Raises:
            ConfigurationError: If a segment is empty or is not a valid
                regular expression.
        """

        return cls.from_patterns(text.split(delimiter))

    @classmethod
    def from_patterns(cls, raw_patterns: Iterable[str]) -> "Selector":
        compiled: List[Pattern[str]] = []
        for position, raw in enumerate(raw_patterns, start=1):
            candidate = raw.strip()
            if not candidate:
                raise ConfigurationError(f"Selection pattern #{position} is empty.")
            try:
                compiled.append(re.compile(candidate))
            except re.error as exc:
                raise ConfigurationError(f"Selection pattern '{candidate}' is invalid: {exc}") from exc
        return cls(compiled)

    @property
    def patterns(self) -> tuple:
        return self._patterns

    def match(self, name: str) -> Optional[Pattern[str]]:
        """Return the first pattern that fully matches ``name``."""

        for pattern in self._patterns:
            if pattern.fullmatch(name):
                return pattern
        return None

    def is_selected(self, name: str) -> bool:
        return self.match(name) is not None

    def select(self, resources: ParsedResourceSet) -> Iterator[SelectedText]:
        """Yield the texts to synthesize from one parsed file.

        Plain strings come first, then string arrays.  An array is matched
        once by its base name and, when selected, contributes every item.
        """

        for entry in resources.strings:
            pattern = self.match(entry.name)
            if pattern is None:
                continue
            _LOGGER.debug("'%s' selected by '%s'", entry.name, pattern.pattern)
            yield SelectedText(key=entry.name, text=entry.raw_value)

        for array in resources.string_arrays:
            pattern = self.match(array.name)
            if pattern is None:
                continue
            _LOGGER.debug("'%s' (%d items) selected by '%s'", array.name, len(array.items), pattern.pattern)
            for index, item in enumerate(array.items):
                yield SelectedText(key=array.item_key(index), text=item)
