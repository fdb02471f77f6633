"""
Configuration for the margin engine.

Every threshold used by the risk scorer and alert rules lives here as a
named field. `Thresholds.from_env()` reads MARGIN_* environment variables
(a .env file is loaded if present) and falls back to the defaults below.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields

from dotenv import load_dotenv

from margindefense.models import ValidationError

ENV_PREFIX = "MARGIN_"


@dataclass(frozen=True)
class Thresholds:
    # Risk score: margin bands (percent)
    margin_critical_pct: float = 60.0
    margin_warning_pct: float = 75.0
    margin_critical_points: int = 30
    margin_warning_points: int = 15

    # Risk score: pending scope requests
    pending_many: int = 2           # strictly more than this → many
    pending_many_points: int = 25
    pending_some_points: int = 10

    # Risk score: burn exceeding revenue, retainer utilization
    burn_over_revenue_points: int = 30
    retainer_utilization_pct: float = 90.0
    retainer_points: int = 15

    # Health tiers (score is >= the cut-off)
    tier_critical: int = 50
    tier_warning: int = 30
    tier_good: int = 15

    # Snapshot margin trend
    trend_improving_pct: float = 70.0
    trend_declining_pct: float = 50.0

    # Alerts
    alert_scope_pending_warning: int = 2
    alert_scope_pending_critical: int = 3
    alert_burn_ratio_warning_pct: float = 40.0
    alert_burn_ratio_critical_pct: float = 50.0
    alert_window_days: int = 7

    # Command center: billable ratio must move more than this to count as a trend
    billable_trend_band_pct: float = 2.0

    # Default windows
    default_period_days: int = 7
    hall_of_shame_limit: int = 5

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "Thresholds":
        load_dotenv(env_file)
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            caster = float if f.type in ("float", float) else int
            try:
                overrides[f.name] = caster(raw)
            except ValueError as e:
                raise ValidationError(
                    f"{ENV_PREFIX}{f.name.upper()}={raw!r} is not a valid {caster.__name__}"
                ) from e
        return cls(**overrides)


DEFAULT_THRESHOLDS = Thresholds()
