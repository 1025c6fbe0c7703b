"""TIME quadrant classification from technical and functional fit ratings.

High fit is 4-5, low fit is 1-3. The page script carries its own copy of this
lookup for the live preview; both read the threshold and the quadrant table
defined here.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict

HIGH_FIT_THRESHOLD = 4


@dataclass(frozen=True)
class TimeClassification:
    code: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


INVEST = TimeClassification("I", "Invest")
MIGRATE = TimeClassification("M", "Migrate")
TOLERATE = TimeClassification("T", "Tolerate")
ELIMINATE = TimeClassification("E", "Eliminate")

QUADRANTS: Dict[str, TimeClassification] = {
    q.code: q for q in (INVEST, MIGRATE, TOLERATE, ELIMINATE)
}


def coerce_number(value: Any) -> float:
    """Best-effort numeric coercion; anything unparsable becomes NaN."""
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return math.nan


def is_high(value: Any) -> bool:
    # NaN compares False, so unparsable ratings count as low.
    return coerce_number(value) >= HIGH_FIT_THRESHOLD


def classify_fit(technical_fit: Any, functional_fit: Any) -> TimeClassification:
    """Map a (technical, functional) rating pair onto its TIME quadrant."""
    tech_high = is_high(technical_fit)
    func_high = is_high(functional_fit)

    if tech_high and func_high:
        return INVEST
    if func_high:
        return MIGRATE
    if tech_high:
        return TOLERATE
    return ELIMINATE
