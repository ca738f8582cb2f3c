#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Data acquisition and reshaping for the income / savings VECM report.

1) Download monthly series from FRED via `pandas_datareader`
   (default: DSPI, disposable personal income, and PMSAVE, personal saving),
   or read them from a local CSV cache when working offline.

2) Store them in long format, one observation per row:

       period (monthly pandas.Period) | series_id | value

3) Pivot into a wide table, one column per series in the order requested,
   one row per calendar month.

Past observations on FRED are treated as immutable: re-running later can only
append trailing months.

Course: Quantitative Methods in Finance (QMF)
License: MIT
"""

import logging

import pandas as pd

from leadlag_errors import DataAcquisitionError

logger = logging.getLogger(__name__)

LONG_COLUMNS = ["period", "series_id", "value"]


def fred_reader(series_ids, start, end=None):
    """
    Download series from FRED.

    Parameters
    ----------
    series_ids : list of str
        FRED series identifiers, e.g. ["DSPI", "PMSAVE"].
    start : str
        Start date in 'YYYY-MM-DD' format.
    end : str or None
        End date in 'YYYY-MM-DD' format. If None, uses today's date.

    Returns
    -------
    pd.DataFrame
        Date-indexed table, one column per series.
    """
    from pandas_datareader import data as pdr

    return pdr.DataReader(list(series_ids), "fred", start=start, end=end)


def _to_long(raw):
    raw = raw.copy()
    raw.index = pd.to_datetime(raw.index)
    raw.index.name = "date"
    long = raw.reset_index().melt(id_vars="date", var_name="series_id", value_name="value")
    long["period"] = long["date"].dt.to_period("M")
    long["value"] = pd.to_numeric(long["value"], errors="coerce")
    long = long.dropna(subset=["value"])
    return long[LONG_COLUMNS].sort_values(["series_id", "period"]).reset_index(drop=True)


def _check_coverage(long, series_ids, start, end):
    if long.empty:
        raise DataAcquisitionError(
            f"no data in range: no observation of {list(series_ids)} "
            f"between {start} and {end or 'today'}"
        )
    counts = long.groupby("series_id").size()
    for sid in series_ids:
        if counts.get(sid, 0) == 0:
            raise DataAcquisitionError(
                f"no data in range for series {sid!r} between {start} and {end or 'today'}"
            )


def fetch_observations(series_ids, start, end=None, reader=None):
    """
    Fetch `series_ids` from `start` (to `end`) as long-format observations.

    `reader` is a callable (series_ids, start, end) -> date-indexed DataFrame,
    FRED by default. Unknown identifiers, network failures and empty ranges
    raise DataAcquisitionError.
    """
    series_ids = list(series_ids)
    if not series_ids:
        raise DataAcquisitionError("no series identifier given")
    reader = reader or fred_reader

    logger.info("Fetching %s from %s", ", ".join(series_ids), start)
    try:
        raw = reader(series_ids, start, end)
    except OSError as exc:
        # pandas_datareader's RemoteDataError and requests errors are OSErrors
        raise DataAcquisitionError(
            f"could not download {series_ids}: {exc}"
        ) from exc

    if raw is None or len(raw) == 0:
        raise DataAcquisitionError(
            f"no data in range: nothing returned for {series_ids} "
            f"between {start} and {end or 'today'}"
        )
    unknown = [sid for sid in series_ids if sid not in raw.columns]
    if unknown:
        raise DataAcquisitionError(f"unknown series identifier(s): {unknown}")

    long = _to_long(raw.loc[:, series_ids])
    _check_coverage(long, series_ids, start, end)
    logger.info("Fetched %d observations", len(long))
    return long


def save_observations_csv(long, path):
    """Write long-format observations to a CSV cache (period as YYYY-MM)."""
    out = long[LONG_COLUMNS].copy()
    out["period"] = out["period"].astype(str)
    out.to_csv(path, index=False)
    return path


def load_observations_csv(path, series_ids, start, end=None):
    """
    Read long-format observations from a CSV cache, with the same checks as
    `fetch_observations`.
    """
    series_ids = list(series_ids)
    try:
        df = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise DataAcquisitionError(f"could not read cache {path}: {exc}") from exc

    missing = set(LONG_COLUMNS) - set(df.columns)
    if missing:
        raise DataAcquisitionError(
            f"Missing expected columns {sorted(missing)} in {path}. Got: {df.columns.tolist()}"
        )

    unknown = [sid for sid in series_ids if sid not in set(df["series_id"])]
    if unknown:
        raise DataAcquisitionError(f"unknown series identifier(s) in {path}: {unknown}")

    df["period"] = pd.to_datetime(df["period"]).dt.to_period("M")
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    df = df.dropna(subset=["value"])
    keep = df["series_id"].isin(series_ids) & (df["period"] >= pd.Period(start, freq="M"))
    if end is not None:
        keep &= df["period"] <= pd.Period(end, freq="M")
    long = df.loc[keep, LONG_COLUMNS].sort_values(["series_id", "period"]).reset_index(drop=True)

    _check_coverage(long, series_ids, start, end)
    logger.info("Loaded %d observations from %s", len(long), path)
    return long


def pivot_wide(long, series_ids):
    """
    Pivot long observations into a wide monthly table.

    Columns follow the order of `series_ids`; rows are sorted by period with
    no duplicates. Months where one series is not yet published (ragged edge)
    are dropped; a missing month inside the sample is an error.
    """
    series_ids = list(series_ids)
    dupes = long.duplicated(subset=["period", "series_id"])
    if dupes.any():
        first = long.loc[dupes].iloc[0]
        raise DataAcquisitionError(
            f"duplicate observation for {first['series_id']!r} in {first['period']}",
            stage="reshape",
        )

    wide = long.pivot(index="period", columns="series_id", values="value")
    missing = [sid for sid in series_ids if sid not in wide.columns]
    if missing:
        raise DataAcquisitionError(f"no observation for {missing}", stage="reshape")
    wide = wide.loc[:, series_ids].sort_index()
    wide.columns.name = None

    # keep the common sample
    complete = wide.dropna()
    if complete.empty:
        raise DataAcquisitionError(
            f"series {series_ids} have no month in common", stage="reshape"
        )
    wide = wide.loc[complete.index.min():complete.index.max()]

    months = pd.period_range(wide.index.min(), wide.index.max(), freq="M")
    if len(months) != len(wide) or wide.isna().to_numpy().any():
        gaps = months.difference(complete.index)
        raise DataAcquisitionError(
            f"missing months inside the sample: {[str(p) for p in gaps[:5]]}",
            stage="reshape",
        )

    wide.index = pd.PeriodIndex(wide.index, freq="M", name="period")
    return wide.astype(float)
