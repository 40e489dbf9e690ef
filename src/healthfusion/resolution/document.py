"""Top-level scan document handling."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Union

from healthfusion.domain.exceptions import DocumentParseError

from .accessors import MISSING, find_key

ENVELOPE_KEY = "scan_powershell"


def parse_document(raw: Union[str, bytes, Mapping], source_name: Optional[str] = None) -> Dict[str, Any]:
    """Parse a scan document into a mapping.

    Raises:
        DocumentParseError: the text is not JSON or its top level is not an object.
    """
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8-sig", errors="replace")
    if not isinstance(raw, str) or not raw.strip():
        raise DocumentParseError(
            "Scan document is empty", source_name=source_name
        ).add_suggestion("Check that the external scan finished and wrote its output")
    text = raw.lstrip("\ufeff")
    try:
        root = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentParseError(
            f"Scan document is not valid JSON: {e.msg}",
            source_name=source_name,
            position=e.pos,
        ) from e
    if not isinstance(root, dict):
        raise DocumentParseError(
            f"Scan document top level must be an object, got {type(root).__name__}",
            source_name=source_name,
        )
    return root


def lookup(root: Mapping, key: str) -> Any:
    """``root[scan_powershell][key]`` when present, else ``root[key]``, else None."""
    envelope = find_key(root, ENVELOPE_KEY)
    if isinstance(envelope, Mapping):
        value = find_key(envelope, key)
        if value is not MISSING:
            return value
    value = find_key(root, key)
    return None if value is MISSING else value


def locate_sections(root: Mapping) -> Mapping:
    sections = lookup(root, "sections")
    return sections if isinstance(sections, Mapping) else {}
