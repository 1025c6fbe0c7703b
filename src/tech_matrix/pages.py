"""Render the single-page Technology Matrix UI."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Dict, List, Tuple

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from .classification import HIGH_FIT_THRESHOLD, QUADRANTS
from .config import Settings
from .models import CATEGORIES, FIT_MAX, FIT_MIN

PAGE_TEMPLATE = "index.html"

FIT_LABELS: List[Tuple[int, str]] = [
    (5, "Excellent"),
    (4, "Good"),
    (3, "Fair"),
    (2, "Poor"),
    (1, "Bad"),
]


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("tech_matrix", "templates"),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _script_json(value) -> Markup:
    """JSON for embedding inside an inline <script> block."""
    text = json.dumps(value, ensure_ascii=False)
    return Markup(text.replace("<", "\\u003c").replace(">", "\\u003e"))


def page_context(settings: Settings) -> Dict[str, object]:
    token_gate = settings.token_gate_enabled
    return {
        "categories": CATEGORIES,
        "fit_values": list(range(FIT_MIN, FIT_MAX + 1)),
        "fit_labels": FIT_LABELS,
        "token_gate_enabled": token_gate,
        "high_threshold": _script_json(HIGH_FIT_THRESHOLD),
        "quadrants": _script_json({code: q.label for code, q in QUADRANTS.items()}),
    }


def render_page(settings: Settings) -> str:
    """Render the full HTML document for the given settings."""
    template = _environment().get_template(PAGE_TEMPLATE)
    return template.render(**page_context(settings))


def security_headers(settings: Settings) -> Dict[str, str]:
    """Headers that pin iframe embedding to the configured CRM origin."""
    return {
        "Content-Security-Policy": f"frame-ancestors {settings.frame_ancestor};",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "X-Content-Type-Options": "nosniff",
    }
