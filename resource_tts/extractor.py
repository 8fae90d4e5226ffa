"""Markup-preserving parser for Android-style string resource files.

``<string>`` values keep any embedded elements (SSML ``<sub>``, ``<say-as>``,
``<xliff:g>`` placeholders and so on) so the speech engine receives them
intact.  ``<string-array>`` items are read as plain inner text.

Example::

    >>> parsed = parse_resource_text(
    ...     '<resources><string name="tip_a">Say <sub alias="eg.">e.g.</sub> now</string></resources>'
    ... )
    >>> parsed.strings[0].raw_value
    'Say <sub alias="eg.">e.g.</sub> now'
"""
from __future__ import annotations

import io
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from .core import ParsedResourceSet, ResourceParseError, StringArrayEntry, StringEntry

_LOGGER = logging.getLogger(__name__)

STRING_TAG = "string"
STRING_ARRAY_TAG = "string-array"
ITEM_TAG = "item"

_XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "b": "\b",
    "f": "\f",
}


def _parse_tree(source: BinaryIO) -> Tuple[ET.Element, Dict[str, str]]:
    """Build the element tree and remember which prefix each namespace used."""

    namespaces: Dict[str, str] = {_XML_NAMESPACE: "xml"}
    root: Optional[ET.Element] = None
    for event, item in ET.iterparse(source, events=("start", "start-ns")):
        if event == "start-ns":
            prefix, uri = item
            namespaces.setdefault(uri, prefix)
        elif root is None:
            root = item
    if root is None:  # pragma: no cover - iterparse raises on empty input
        raise ET.ParseError("no element found")
    return root, namespaces


def _qualified_name(name: str, namespaces: Dict[str, str]) -> str:
    """Turn ElementTree's ``{uri}local`` form back into ``prefix:local``."""

    if not name.startswith("{"):
        return name
    uri, _, local = name[1:].partition("}")
    prefix = namespaces.get(uri)
    return f"{prefix}:{local}" if prefix else local


def _serialize_element(element: ET.Element, namespaces: Dict[str, str]) -> str:
    tag = _qualified_name(element.tag, namespaces)
    # ElementTree keeps attributes in source-document order.
    attributes = "".join(
        f' {_qualified_name(key, namespaces)}="{value}"' for key, value in element.attrib.items()
    )
    inner = serialize_inner_markup(element, namespaces)
    return f"<{tag}{attributes}>{inner}</{tag}>"


def serialize_inner_markup(element: ET.Element, namespaces: Optional[Dict[str, str]] = None) -> str:
    """Return the content of ``element`` with nested tags written back out.

    Text is appended exactly as the parser decoded it (no re-escaping and no
    trimming).  Child elements are rendered as ``<tag attr="val">inner</tag>``
    recursively, in document order.  Comments and processing instructions
    are not part of the tree and therefore disappear, but the text around
    them is kept.
    """

    namespaces = namespaces or {_XML_NAMESPACE: "xml"}
    parts: List[str] = [element.text or ""]
    for child in element:
        if isinstance(child.tag, str):
            parts.append(_serialize_element(child, namespaces))
        parts.append(child.tail or "")
    return "".join(parts)


def unescape_android(text: str) -> str:
    """Resolve the backslash escapes that aapt understands.

    Unknown escapes and malformed ``\\u`` sequences are left untouched.
    """

    result: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char != "\\" or index + 1 >= length:
            result.append(char)
            index += 1
            continue
        marker = text[index + 1]
        if marker in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[marker])
            index += 2
            continue
        if marker == "u":
            digits = text[index + 2:index + 6]
            if len(digits) == 4:
                try:
                    result.append(chr(int(digits, 16)))
                except ValueError:
                    pass
                else:
                    index += 6
                    continue
        result.append(char)
        index += 1
    return "".join(result)


def _is_translatable(element: ET.Element) -> bool:
    return element.get("translatable") != "false"


def _extract(root: ET.Element, namespaces: Dict[str, str], source: Optional[Path], unescape: bool) -> ParsedResourceSet:
    strings: List[StringEntry] = []
    for element in root.iter(STRING_TAG):
        name = element.get("name", "")
        if not name:
            _LOGGER.debug("skipping unnamed <string> in %s", source)
            continue
        value = serialize_inner_markup(element, namespaces)
        if unescape:
            value = unescape_android(value)
        strings.append(StringEntry(name=name, raw_value=value, translatable=_is_translatable(element)))

    arrays: List[StringArrayEntry] = []
    for element in root.iter(STRING_ARRAY_TAG):
        name = element.get("name", "")
        if not name:
            _LOGGER.debug("skipping unnamed <string-array> in %s", source)
            continue
        items = ["".join(item.itertext()) for item in element.iter(ITEM_TAG)]
        if unescape:
            items = [unescape_android(item) for item in items]
        arrays.append(StringArrayEntry(name=name, items=tuple(items), translatable=_is_translatable(element)))

    return ParsedResourceSet(source=source, strings=tuple(strings), string_arrays=tuple(arrays))


def parse_resource_text(
    text: Union[str, bytes],
    *,
    source: Optional[Path] = None,
    unescape: bool = False,
) -> ParsedResourceSet:
    """Parse resource XML held in memory.

    Raises:
        ResourceParseError: If the document is not well-formed XML.
    """

    data = text.encode("utf-8") if isinstance(text, str) else text
    try:
        root, namespaces = _parse_tree(io.BytesIO(data))
    except ET.ParseError as exc:
        raise ResourceParseError(source, str(exc)) from exc
    return _extract(root, namespaces, source, unescape)


def parse_resource_file(path: Union[str, Path], *, unescape: bool = False) -> ParsedResourceSet:
    """Parse one resource file into its string and string-array entries.

    Args:
        path: Location of the XML resource file.
        unescape: Resolve Android backslash escapes in extracted values.
            This changes the text that gets hashed, so it is off by default.

    Raises:
        ResourceParseError: If the file cannot be read or is malformed.
    """

    file_path = Path(path)
    try:
        with file_path.open("rb") as handle:
            root, namespaces = _parse_tree(handle)
    except ET.ParseError as exc:
        raise ResourceParseError(file_path, str(exc)) from exc
    except OSError as exc:
        raise ResourceParseError(file_path, exc.strerror or str(exc)) from exc
    parsed = _extract(root, namespaces, file_path, unescape)
    _LOGGER.debug(
        "parsed %d strings and %d string arrays from %s",
        len(parsed.strings),
        len(parsed.string_arrays),
        file_path,
    )
    return parsed
