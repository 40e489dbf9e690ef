"""Local score: weighted average of the domain scores the scan could see."""

from typing import Dict, Iterable

from .grades import round_half_up

# keyed by HealthDomain value
DOMAIN_WEIGHTS: Dict[str, int] = {
    "OS": 15,
    "CPU": 15,
    "GPU": 10,
    "RAM": 15,
    "Storage": 20,
    "Network": 10,
    "SystemStability": 10,
    "Drivers": 5,
}

# sections that only carry injected evidence keep this status and no score
UNSCORED_STATUS = "MISSING"


def is_scored(section) -> bool:
    return section.has_data and section.collection_status != UNSCORED_STATUS


def compute_local_score(sections: Iterable) -> int:
    """Unscored domains are left out of both sums; 0 when none is scored."""
    total = 0.0
    weight_sum = 0
    for section in sections:
        if not is_scored(section):
            continue
        weight = DOMAIN_WEIGHTS.get(section.domain.value, 0)
        total += section.score * weight
        weight_sum += weight
    if weight_sum == 0:
        return 0
    return round_half_up(total / weight_sum)
