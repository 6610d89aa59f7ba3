from decimal import ROUND_HALF_UP, Decimal

RATING_MIN = 1
RATING_MAX = 5


def round_half_up(value: float, places: int = 0) -> float:
    """2.5 -> 3, 3.5 -> 4, regardless of the interpreter's banker's rounding."""
    exp = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exp, rounding=ROUND_HALF_UP))


def is_valid_score(score) -> bool:
    # bool is an int subclass; strings and other JSON values never count
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    return RATING_MIN <= score <= RATING_MAX


def derive_overall_rating(kpi_scores) -> int | None:
    """
    Mean of the KPI scores that fall in [1, 5], rounded half up.
    Non-numeric, out-of-range or missing scores are skipped; None when nothing is left.
    """
    valid = [s.score for s in kpi_scores or [] if is_valid_score(s.score)]
    if not valid:
        return None
    return int(round_half_up(sum(valid) / len(valid)))


def average(ratings, places: int = 2) -> float | None:
    values = [r for r in ratings if r is not None]
    if not values:
        return None
    return round_half_up(sum(values) / len(values), places)
