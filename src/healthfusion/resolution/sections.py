"""Locate one logical section of the scan document."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Sequence, Tuple

from .accessors import MISSING, find_key

logger = logging.getLogger(__name__)

NOISE_STATUSES = {"error", "failed"}


@dataclass(frozen=True)
class SectionLookup:
    data: Any = None
    found: bool = False
    skipped: bool = False
    name: Optional[str] = None
    status: Optional[str] = None

    def __bool__(self) -> bool:
        return self.found


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Mapping, list, tuple)):
        return len(value) == 0
    return False


def _match(sections: Mapping, aliases: Sequence[str]) -> Tuple[Optional[str], Any]:
    # exact match across all aliases beats a case-insensitive hit
    for alias in aliases:
        if alias in sections:
            return alias, sections[alias]
    for alias in aliases:
        lowered = alias.lower()
        for key, value in sections.items():
            if isinstance(key, str) and key.lower() == lowered:
                return key, value
    return None, MISSING


def section_status(section: Any) -> Optional[str]:
    if not isinstance(section, Mapping):
        return None
    status = find_key(section, "status")
    return status if isinstance(status, str) else None


def unwrap(section: Any) -> Any:
    """Section payload: the ``data`` envelope when present, else the section."""
    if isinstance(section, Mapping):
        data = find_key(section, "data")
        if data is not MISSING:
            return data
    return section


def resolve_section(sections: Optional[Mapping], aliases) -> SectionLookup:
    """Resolve the first matching alias, unwrap it, drop failed/empty sections."""
    if isinstance(aliases, str):
        aliases = (aliases,)
    if not isinstance(sections, Mapping):
        return SectionLookup()

    name, section = _match(sections, aliases)
    if name is None:
        return SectionLookup()

    status = section_status(section)
    if status is not None and status.strip().lower() in NOISE_STATUSES:
        logger.debug("Section %s skipped (status=%s)", name, status)
        return SectionLookup(found=False, skipped=True, name=name, status=status)

    data = unwrap(section)
    if is_empty(data):
        logger.debug("Section %s is empty", name)
        return SectionLookup(found=False, name=name, status=status)

    return SectionLookup(data=data, found=True, name=name, status=status)


def iter_statuses(sections: Optional[Mapping]) -> Iterator[Tuple[str, str]]:
    """(name, upper-cased status) for every section; undeclared status is OK.

    Sections that are empty and declare no status are left out.
    """
    if not isinstance(sections, Mapping):
        return
    for name, section in sections.items():
        if not isinstance(name, str):
            continue
        status = section_status(section)
        if status and status.strip():
            yield name, status.strip().upper()
        elif not is_empty(unwrap(section)):
            yield name, "OK"
