"""
JSON and XML encoders for problem details payloads.

JSON output is controlled by ``JsonFlags``. XML output is a ``<problem>``
document in the ``urn:ietf:rfc:7807`` namespace; every mapping key is first
rewritten into a valid XML element name, which is lossy.
"""

import dataclasses
import enum
import json
import math
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict

XML_NAMESPACE = "urn:ietf:rfc:7807"
XML_ROOT = "problem"

_NAME_START_CHARS = (
    "A-Z_a-z"
    "\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u02FF\u0370-\u037D\u037F-\u1FFF"
    "\u200C-\u200D\u2070-\u218F\u2C00-\u2FEF\u3001-\uD7FF\uF900-\uFDCF\uFDF0-\uFFFD"
)
_NAME_CHARS = _NAME_START_CHARS + "\\-.0-9\u00B7\u0300-\u036F\u203F-\u2040"

_INVALID_NAME_CHAR = re.compile(f"[^{_NAME_CHARS}]")
_INVALID_NAME_START = re.compile(f"^[^{_NAME_START_CHARS}]")


class JsonFlags(enum.IntFlag):
    """Switches for JSON encoding."""
    PRETTY_PRINT = 1
    UNESCAPED_SLASHES = 2
    UNESCAPED_UNICODE = 4
    PRESERVE_ZERO_FRACTION = 8

    DEFAULT = PRETTY_PRINT | UNESCAPED_SLASHES | UNESCAPED_UNICODE | PRESERVE_ZERO_FRACTION


def to_serializable(value: Any) -> Any:
    """``default`` hook for json.dumps: turn foreign objects into plain data."""
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    return f"{value!r} of type {type(value).__name__}"


def encode_json(payload: Dict[str, Any], flags: int = JsonFlags.DEFAULT) -> str:
    flags = JsonFlags(flags)
    payload = _plain_numbers(_flatten(payload), JsonFlags.PRESERVE_ZERO_FRACTION in flags)

    content = json.dumps(
        payload,
        indent=4 if JsonFlags.PRETTY_PRINT in flags else None,
        ensure_ascii=JsonFlags.UNESCAPED_UNICODE not in flags,
        allow_nan=False,
    )
    if JsonFlags.UNESCAPED_SLASHES not in flags:
        # "/" only ever appears inside JSON strings
        content = content.replace("/", "\\/")
    return content


def sanitize_xml_name(name: str) -> str:
    """Replace every character that may not appear in an XML element name with ``_``."""
    name = _INVALID_NAME_CHAR.sub("_", name)
    name = _INVALID_NAME_START.sub("_", name)
    return name or "_"


def clean_keys_for_xml(value: Any) -> Any:
    """Recursively sanitize mapping keys; list items keep their position."""
    if isinstance(value, dict):
        return {sanitize_xml_name(str(key)): clean_keys_for_xml(item) for key, item in value.items()}
    if isinstance(value, list):
        return [clean_keys_for_xml(item) for item in value]
    return value


def encode_xml(payload: Dict[str, Any]) -> bytes:
    content = clean_keys_for_xml(_plain_numbers(_flatten(payload)))

    root = ET.Element(XML_ROOT, {"xmlns": XML_NAMESPACE})
    _append_children(root, content)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _append_children(parent: ET.Element, mapping: Dict[str, Any]) -> None:
    for key, value in mapping.items():
        if isinstance(value, list):
            if not value:
                ET.SubElement(parent, key)
            for item in value:
                _append_value(ET.SubElement(parent, key), item)
        else:
            _append_value(ET.SubElement(parent, key), value)


def _append_value(element: ET.Element, value: Any) -> None:
    if isinstance(value, dict):
        _append_children(element, value)
    elif isinstance(value, list):
        # list nested directly in a list: wrap each item
        for item in value:
            _append_value(ET.SubElement(element, "item"), item)
    elif value is None:
        return
    elif isinstance(value, (bool, int, float)):
        element.text = json.dumps(value)
    else:
        element.text = str(value)


def _flatten(payload: Dict[str, Any]) -> Any:
    # Round trip through JSON so objects become plain dicts and lists
    return json.loads(json.dumps(payload, default=to_serializable))


def _plain_numbers(value: Any, keep_zero_fraction: bool = True) -> Any:
    """Replace NaN and infinities with None; optionally turn 1.0 into 1."""
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if not keep_zero_fraction and value.is_integer():
            return int(value)
        return value
    if isinstance(value, dict):
        return {key: _plain_numbers(item, keep_zero_fraction) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain_numbers(item, keep_zero_fraction) for item in value]
    return value
