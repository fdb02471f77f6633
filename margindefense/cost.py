"""
Cost impact arithmetic and work-log input validation.

cost_impact = (duration_minutes / 60) × hourly_rate

`compute_cost_impact` is total and does no checking; callers validate first
with `validate_work_input`, which the record store always does before
classifying or costing a new work log.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from margindefense.models import ValidationError

logger = logging.getLogger(__name__)


def compute_cost_impact(duration_minutes: float, hourly_rate: float) -> float:
    return (duration_minutes / 60) * hourly_rate


def require_positive(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {type(value).__name__}")
    if not math.isfinite(value) or value <= 0:
        raise ValidationError(f"{name} must be a positive finite number, got {value!r}")
    return float(value)


def validate_work_input(description: str, duration_minutes: float, hourly_rate: float) -> None:
    """Reject empty descriptions and non-positive or non-finite durations/rates."""
    try:
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("description is empty")
        require_positive("duration_minutes", duration_minutes)
        require_positive("hourly_rate", hourly_rate)
    except ValidationError as e:
        logger.warning("Rejected work log input: %s", e)
        raise


def cost_severity(cost_impact: float) -> str:
    if cost_impact < 50:
        return "low"
    elif cost_impact < 200:
        return "medium"
    elif cost_impact < 500:
        return "high"
    else:
        return "critical"


def format_currency(amount: float, symbol: str = "$") -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
