"""Build stored assessment documents and derive the customer summary view."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .classification import classify_fit
from .models import AssessmentDraft, CustomerSummary


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_record_document(
    draft: AssessmentDraft, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Classify a validated draft and stamp it, ready to be sent to the store."""
    time = classify_fit(draft.technical_fit, draft.functional_fit)
    stamp = utc_timestamp(now)
    return {
        "customerName": draft.customer_name,
        "customerId": draft.customer_id,
        "category": draft.category,
        "solution": draft.solution,
        "vendor": draft.vendor,
        "notes": draft.notes,
        "technicalFit": draft.technical_fit,
        "functionalFit": draft.functional_fit,
        "timeCode": time.code,
        "timeLabel": time.label,
        "dateImplemented": draft.date_implemented,
        "contractExpiration": draft.contract_expiration,
        "createdAt": stamp,
        "updatedAt": stamp,
    }


def summarize_customers(documents: Iterable[Dict[str, Any]]) -> List[CustomerSummary]:
    """
    Count records per distinct customer name.

    Names are counted exactly as stored, so each entry matches the exact-name
    item filter; blank names are skipped. Output is sorted alphabetically,
    case-insensitive, with the raw name breaking ties.
    """
    counts: Counter[str] = Counter()
    for doc in documents:
        if not isinstance(doc, dict):
            continue
        name = doc.get("customerName")
        if isinstance(name, str) and name.strip():
            counts[name] += 1
    return [
        CustomerSummary(customer_name=name, count=counts[name])
        for name in sorted(counts, key=lambda n: (n.casefold(), n))
    ]
