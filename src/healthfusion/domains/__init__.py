"""Fixed-domain health mapping."""

from .mapper import (
    SECTION_TO_DOMAIN,
    HealthDomainMapper,
    domain_for_section,
    severity_for_penalty_type,
    severity_for_score,
)

__all__ = [
    "SECTION_TO_DOMAIN",
    "HealthDomainMapper",
    "domain_for_section",
    "severity_for_penalty_type",
    "severity_for_score",
]
