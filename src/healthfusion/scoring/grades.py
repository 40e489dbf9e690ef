"""Grade and verdict bands shared by the fusion engine and the report."""

from decimal import Decimal, ROUND_HALF_UP

# (minimum score, grade, verdict), best first
GRADE_BANDS = (
    (95, "A+", "Excellent - your PC is in perfect condition"),
    (90, "A", "Very good - your PC runs optimally"),
    (80, "B+", "Good - minor optimisations possible"),
    (70, "B", "Fair - attention recommended on some points"),
    (60, "C", "Degraded - problems affect performance"),
    (50, "D", "Critical - intervention recommended soon"),
    (0, "F", "Critical - urgent intervention required"),
)


def round_half_up(value: float) -> int:
    """82.5 -> 83; Python's round() would give 82."""
    # float noise such as 82.49999999999999 is trimmed first
    return int(Decimal(str(round(value, 9))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_score(value: int) -> int:
    return max(0, min(100, value))


def _band(score: int):
    for minimum, grade, verdict in GRADE_BANDS:
        if score >= minimum:
            return grade, verdict
    return GRADE_BANDS[-1][1:]


def score_to_grade(score: int) -> str:
    return _band(score)[0]


def score_to_verdict(score: int) -> str:
    return _band(score)[1]
