#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Settings of the income / savings VECM report.

FRED series
-----------
- DSPI   : Disposable Personal Income, billions of dollars, SAAR, monthly
- PMSAVE : Personal Saving, billions of dollars, SAAR, monthly

Course: Quantitative Methods in Finance (QMF)
License: MIT
"""

from dataclasses import dataclass
from typing import Optional

import pandas as pd

from leadlag_models import CRITERIA, KPSS_CRIT_KEYS

SERIES_A = "DSPI"
SERIES_B = "PMSAVE"
START_DATE = "1990-01-01"
LAG_MAX = 12
IRF_HORIZON = 6
FEVD_HORIZON = 30

# Hannan–Quinn; the VECM lag order moves by ±1 with the criterion on monthly data
CRITERION = "hqic"

SERIES_LABELS = {
    "DSPI": "Disposable personal income",
    "PMSAVE": "Personal saving",
}


@dataclass(frozen=True)
class ReportConfig:
    series_a: str = SERIES_A
    series_b: str = SERIES_B
    start_date: str = START_DATE
    end_date: Optional[str] = None
    lag_max: int = LAG_MAX
    irf_horizon: int = IRF_HORIZON
    fevd_horizon: int = FEVD_HORIZON
    criterion: str = CRITERION
    alpha: float = 0.05
    bootstrap_repl: int = 0
    seed: Optional[int] = None

    def __post_init__(self):
        if not self.series_a or not self.series_b:
            raise ValueError("two series identifiers are required")
        if self.series_a == self.series_b:
            raise ValueError(f"series_a and series_b are both {self.series_a!r}")
        start = _parse_date(self.start_date, "start_date")
        if self.end_date is not None:
            end = _parse_date(self.end_date, "end_date")
            if end < start:
                raise ValueError(f"end_date {self.end_date} is before start_date {self.start_date}")
        if self.lag_max < 1:
            raise ValueError("lag_max must be at least 1")
        if self.irf_horizon < 0:
            raise ValueError("irf_horizon must be non-negative")
        if self.fevd_horizon < 1:
            raise ValueError("fevd_horizon must be at least 1")
        if self.criterion not in CRITERIA:
            raise ValueError(f"criterion must be one of {CRITERIA}")
        # ndiffs uses the KPSS critical values
        if self.alpha not in KPSS_CRIT_KEYS:
            raise ValueError(f"alpha must be one of {sorted(KPSS_CRIT_KEYS)}")
        if self.bootstrap_repl < 0:
            raise ValueError("bootstrap_repl must be non-negative")

    @property
    def series_ids(self):
        return [self.series_a, self.series_b]


def label(series_id):
    return SERIES_LABELS.get(series_id, series_id)


def _parse_date(value, field):
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"{field} {value!r} is not a date: {exc}") from exc
    if ts is pd.NaT:
        raise ValueError(f"{field} is missing")
    return ts
