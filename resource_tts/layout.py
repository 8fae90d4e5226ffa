"""Input partition discovery and output directory resolution."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .core import ConfigurationError

_LOGGER = logging.getLogger(__name__)

DEFAULT_INPUT_FOLDER_NAME = "values"
INPUT_FOLDER_PREFIXES = ("values-", "res-")
DEFAULT_LANGUAGE = "en"
DEFAULT_OUTPUT_FOLDER_PREFIX = "raw-"
XML_EXTENSION = ".xml"

_PLACEHOLDERS = ("%1$s", "%s", "{lang}")


@dataclass(frozen=True)
class LanguagePartition:
    """One language's resource folder, e.g. ``values-hi``."""

    language: str
    directory: Path


def language_for_folder(folder_name: str, default_language: str = DEFAULT_LANGUAGE) -> Optional[str]:
    """Return the language code a resource folder stands for, if any.

    ``values`` maps to ``default_language``; ``values-hi`` and ``res-hi``
    map to ``hi``.  Any other name yields ``None``.
    """

    if folder_name == DEFAULT_INPUT_FOLDER_NAME:
        return default_language
    for prefix in INPUT_FOLDER_PREFIXES:
        if folder_name.startswith(prefix) and len(folder_name) > len(prefix):
            return folder_name[len(prefix):]
    return None


def validate_input_root(input_root: Union[str, Path]) -> Path:
    root = Path(input_root).expanduser()
    if not root.is_dir():
        raise ConfigurationError(f"The provided input folder '{root}' is not a directory.")
    return root


def discover_partitions(
    input_root: Union[str, Path],
    *,
    default_language: str = DEFAULT_LANGUAGE,
) -> List[LanguagePartition]:
    """List the language folders directly under ``input_root``, sorted by name."""

    root = validate_input_root(input_root)
    partitions: List[LanguagePartition] = []
    for child in sorted(root.iterdir(), key=lambda path: path.name):
        if not child.is_dir():
            continue
        language = language_for_folder(child.name, default_language)
        if language is None:
            _LOGGER.debug("ignoring folder %s", child)
            continue
        partitions.append(LanguagePartition(language=language, directory=child))
    return partitions


def resource_files(partition_directory: Path) -> List[Path]:
    """All ``.xml`` files below a partition folder, in a stable order."""

    return sorted(
        path for path in Path(partition_directory).rglob(f"*{XML_EXTENSION}") if path.is_file()
    )


def is_output_template(output: str) -> bool:
    return any(placeholder in output for placeholder in _PLACEHOLDERS)


def resolve_output_directory(output: Union[str, Path], language: str) -> Path:
    """Work out where ``language``'s artifacts live.

    ``output`` is either a template containing ``%1$s``, ``%s`` or
    ``{lang}`` (for example ``app/src/main/res/raw-%1$s``) or a root folder,
    in which case the directory is ``<root>/raw-<lang>``.
    """

    text = str(output)
    if is_output_template(text):
        resolved = text.replace("%1$s", language).replace("%s", language).replace("{lang}", language)
        return Path(resolved).expanduser()
    return Path(text).expanduser() / f"{DEFAULT_OUTPUT_FOLDER_PREFIX}{language}"


def ensure_directory(directory: Path) -> Path:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Failed to create output folder '{directory}': {exc}") from exc
    return directory
