"""Schema-tolerant access to the external scan document."""

from .accessors import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_string,
    find_key,
    first_coercible,
    get_value,
    try_bool,
    try_float,
    try_int,
    try_list,
    try_mapping,
    try_string,
)
from .document import locate_sections, lookup, parse_document
from .sections import SectionLookup, iter_statuses, resolve_section, unwrap

__all__ = [
    "coerce_bool",
    "coerce_float",
    "coerce_int",
    "coerce_string",
    "find_key",
    "first_coercible",
    "get_value",
    "try_bool",
    "try_float",
    "try_int",
    "try_list",
    "try_mapping",
    "try_string",
    "locate_sections",
    "lookup",
    "parse_document",
    "SectionLookup",
    "iter_statuses",
    "resolve_section",
    "unwrap",
]
