from __future__ import annotations

import math
import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from utils import feet_to_meters


class ConfigurationError(ValueError):
    """Raised for requests that cannot be served as configured."""


DEFAULT_RADIUS_M = feet_to_meters(20)


class Configuration(BaseModel):
    # Nearby search
    search_radius_m: float = Field(default=DEFAULT_RADIUS_M)
    search_staleness_ms: int = Field(default=30 * 60 * 1000)
    search_candidate_limit: int = Field(default=300)

    # Nearby alerts
    alerts_radius_m: float = Field(default=DEFAULT_RADIUS_M)
    alerts_staleness_ms: int = Field(default=5 * 60 * 1000)
    alerts_candidate_limit: int = Field(default=200)
    alert_ledger_ttl_sec: int = Field(default=24 * 3600)

    # Store
    seed_path: Optional[str] = Field(default=None)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "search_radius_m": os.getenv("NEARBY_SEARCH_RADIUS_M"),
            "search_staleness_ms": os.getenv("NEARBY_SEARCH_STALENESS_MS"),
            "search_candidate_limit": os.getenv("NEARBY_SEARCH_CANDIDATE_LIMIT"),
            "alerts_radius_m": os.getenv("NEARBY_ALERTS_RADIUS_M"),
            "alerts_staleness_ms": os.getenv("NEARBY_ALERTS_STALENESS_MS"),
            "alerts_candidate_limit": os.getenv("NEARBY_ALERTS_CANDIDATE_LIMIT"),
            "alert_ledger_ttl_sec": os.getenv("NEARBY_ALERT_LEDGER_TTL_SEC"),
            "seed_path": os.getenv("NEARBY_SEED_PATH"),
        }

        for k, v in env_map.items():
            if v is None or v == "":
                continue
            raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def validate_limits(self) -> None:
        check_window(self.search_radius_m, self.search_staleness_ms)
        check_window(self.alerts_radius_m, self.alerts_staleness_ms)
        if self.search_candidate_limit < 1 or self.alerts_candidate_limit < 1:
            raise ConfigurationError("candidate limits must be positive")

    def log_summary(self) -> str:
        return (
            "search_radius_m=%.3f search_staleness_ms=%d search_limit=%d "
            "alerts_radius_m=%.3f alerts_staleness_ms=%d alerts_limit=%d seed=%s"
            % (
                self.search_radius_m,
                self.search_staleness_ms,
                self.search_candidate_limit,
                self.alerts_radius_m,
                self.alerts_staleness_ms,
                self.alerts_candidate_limit,
                self.seed_path or "unset",
            )
        )


def check_window(radius_m: float, staleness_ms: float) -> None:
    """Reject radius/staleness values the ranker cannot honour."""
    if radius_m is None or not math.isfinite(radius_m) or radius_m < 0:
        raise ConfigurationError(f"radius must be a finite non-negative number of meters, got {radius_m!r}")
    if staleness_ms is None or not math.isfinite(staleness_ms) or staleness_ms < 0:
        raise ConfigurationError(
            f"staleness must be a finite non-negative number of milliseconds, got {staleness_ms!r}"
        )
