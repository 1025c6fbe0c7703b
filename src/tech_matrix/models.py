"""Data models for Technology Matrix assessments."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .classification import coerce_number

CATEGORIES: List[str] = [
    "UC/UCaaS",
    "AI",
    "PSTN/POTS",
    "Physical Infrastructure/IaaS",
    "Backup/BaaS",
    "DR/DRaaS",
    "MSP",
    "Physical Security",
    "Cyber Security",
    "WAN/SD-WAN/SASE",
    "TEM (technology expense management)",
    "Miscellaneous Projects",
]

FIT_MIN = 1
FIT_MAX = 5

REQUIRED_FIELDS_MESSAGE = "customerName, category, and solution are required"


class PayloadError(ValueError):
    """Create payload failed a presence or range check."""


class AssessmentDraft(BaseModel):
    """Validated create payload, before classification and timestamps."""

    customer_name: str = Field(..., min_length=1)
    customer_id: Optional[str] = Field(
        None, description="Legacy free-form identifier (e.g. a CRM account GUID)."
    )
    category: str = Field(..., min_length=1)
    solution: str = Field(..., min_length=1)
    vendor: str = ""
    notes: str = ""
    technical_fit: int = Field(..., ge=FIT_MIN, le=FIT_MAX)
    functional_fit: int = Field(..., ge=FIT_MIN, le=FIT_MAX)
    date_implemented: Optional[str] = None
    contract_expiration: Optional[str] = None


class CustomerSummary(BaseModel):
    """One distinct customer name and how many records it has."""

    customer_name: str = Field(..., serialization_alias="customerName")
    count: int


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    return _text(value) or None


def _parse_fit(payload: Dict[str, Any], key: str) -> int:
    number = coerce_number(payload.get(key))
    if math.isnan(number) or not (FIT_MIN <= number <= FIT_MAX):
        raise PayloadError(f"{key} must be {FIT_MIN}-{FIT_MAX}")
    if not number.is_integer():
        raise PayloadError(f"{key} must be a whole number {FIT_MIN}-{FIT_MAX}")
    return int(number)


def parse_item_payload(payload: Any) -> AssessmentDraft:
    """
    Validate a raw create body into an AssessmentDraft.

    Ratings are checked first, each with its own message, then the three
    required text fields together. Client-supplied timeCode/timeLabel and any
    other unknown keys are dropped.
    """
    if not isinstance(payload, dict):
        raise PayloadError("Invalid JSON body")

    technical_fit = _parse_fit(payload, "technicalFit")
    functional_fit = _parse_fit(payload, "functionalFit")

    customer_name = _text(payload.get("customerName"))
    category = _text(payload.get("category"))
    solution = _text(payload.get("solution"))
    if not (customer_name and category and solution):
        raise PayloadError(REQUIRED_FIELDS_MESSAGE)

    return AssessmentDraft(
        customer_name=customer_name,
        customer_id=_optional_text(payload.get("customerId")),
        category=category,
        solution=solution,
        vendor=_text(payload.get("vendor")),
        notes=_text(payload.get("notes")),
        technical_fit=technical_fit,
        functional_fit=functional_fit,
        date_implemented=_optional_text(payload.get("dateImplemented")),
        contract_expiration=_optional_text(payload.get("contractExpiration")),
    )
