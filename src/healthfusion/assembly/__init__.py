"""Snapshot assembly: section mappers, merge policies and the assembler."""

from .builder import SnapshotAssembler
from .merge import aggregate_max, first_available_wins, merge_into
from .section_mappers import SECTION_MAPPERS, SectionMapper, build_external_summary

__all__ = [
    "SnapshotAssembler",
    "aggregate_max",
    "first_available_wins",
    "merge_into",
    "SECTION_MAPPERS",
    "SectionMapper",
    "build_external_summary",
]
