#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
QMF — Disposable Income and Personal Saving: Who Leads?
=======================================================

Unit roots, cointegration and a Vector Error Correction Model (VECM) on two
monthly US series from FRED:

   - DSPI   : Disposable Personal Income
   - PMSAVE : Personal Saving

Workflow
--------
1) Data acquisition
   - Download both series from FRED with `pandas_datareader` (internet),
     or read a long-format CSV cache (`--csv`).
   - Pivot to one row per month, one column per series.

2) Stationarity
   - Number of differences needed for each series (KPSS, 5%).
   - ADF and KPSS tables in levels and first differences.

3) Transformation
   - 100 * Δ log: monthly growth rates in percent.

4) Cointegration
   - OLS of saving growth on income growth; ADF (with drift, lag by BIC)
     on the residuals. H0: no cointegration.

5) VECM
   - Lag order: VAR in levels, Hannan–Quinn criterion, up to 12 lags;
     VECM lag = VAR lag − 1.
   - Johansen ML, cointegration rank 1, unrestricted constant.

6) Diagnostics
   - Orthogonalized impulse responses (6 months), FEVD (30 months),
     error-correction term against its mean.

Usage
-----
    python income_savings_vecm.py                      # FRED, figures in fig/
    python income_savings_vecm.py --csv data/fred.csv  # offline
    python income_savings_vecm.py --save-csv data/fred.csv --bootstrap 200

Set `--no-plots` to skip figures (the report is still written).

File: income_savings_vecm.py
Repository: https://github.com/skimeur/QMF
Course: Quantitative Methods in Finance (QMF)
License: MIT
"""

import argparse
import logging
import os
import sys

from leadlag_config import (CRITERION, FEVD_HORIZON, IRF_HORIZON, LAG_MAX,
                            SERIES_A, SERIES_B, START_DATE, ReportConfig)
from leadlag_data import load_observations_csv, save_observations_csv
from leadlag_diagnostics import fevd_frame
from leadlag_errors import LeadLagError
from leadlag_report import run_pipeline, save_figures, write_report

logger = logging.getLogger("income_savings_vecm")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(level=None):
    """Console logging; level from the argument, else LOG_LEVEL, else INFO."""
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Unit roots, cointegration and VECM: disposable income vs personal saving."
    )
    parser.add_argument("--series-a", default=SERIES_A, help="first series (regressor)")
    parser.add_argument("--series-b", default=SERIES_B, help="second series (dependent)")
    parser.add_argument("--start", default=START_DATE, help="first date, YYYY-MM-DD")
    parser.add_argument("--end", default=None, help="last date, YYYY-MM-DD")
    parser.add_argument("--lag-max", type=int, default=LAG_MAX)
    parser.add_argument("--irf-horizon", type=int, default=IRF_HORIZON)
    parser.add_argument("--fevd-horizon", type=int, default=FEVD_HORIZON)
    parser.add_argument("--criterion", default=CRITERION,
                        choices=["aic", "bic", "hqic", "fpe"])
    parser.add_argument("--alpha", type=float, default=0.05,
                        help="significance level of the KPSS differencing test")
    parser.add_argument("--bootstrap", type=int, default=0,
                        help="bootstrap replications for IRF bands (0: none)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--csv", default=None, help="read observations from this CSV cache")
    parser.add_argument("--save-csv", default=None, help="write downloaded observations here")
    parser.add_argument("--outdir", default="fig", help="figures and report.md")
    parser.add_argument("--no-plots", action="store_true")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def main(argv=None, reader=None):
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = ReportConfig(
            series_a=args.series_a,
            series_b=args.series_b,
            start_date=args.start,
            end_date=args.end,
            lag_max=args.lag_max,
            irf_horizon=args.irf_horizon,
            fevd_horizon=args.fevd_horizon,
            criterion=args.criterion,
            alpha=args.alpha,
            bootstrap_repl=args.bootstrap,
            seed=args.seed,
        )
    except ValueError as exc:
        logger.error("invalid configuration: %s", exc)
        return 2

    try:
        long = None
        if args.csv:
            long = load_observations_csv(args.csv, config.series_ids, config.start_date, config.end_date)
        artifacts = run_pipeline(config, reader=reader, long=long)
    except LeadLagError as exc:
        logger.error("run stopped at stage '%s': %s", exc.stage, exc)
        return 1

    if args.save_csv and not args.csv:
        save_observations_csv(artifacts.long, args.save_csv)

    #%% Results
    co = artifacts.coint
    sel = artifacts.lag_selection
    fit = artifacts.vecm

    print("\n=== Unit root tests ===")
    print(artifacts.unit_roots.to_string(index=False, float_format=lambda z: f"{z: .3f}"))
    print("Differences needed:", artifacts.orders)

    print(f"\n=== Cointegrating regression: {co.dependent} on {co.regressor} ===")
    print(co.ols.summary())
    print("H0: residuals have a unit root (no cointegration)")
    print(f"ADF statistic: {co.adf_stat:.4f}")
    print(f"P-value: {co.p_value:.4f}")
    print("Critical values:", co.critical_values)
    print(f"Cointegrated at 5%: {co.cointegrated}")

    print(f"\n=== Lag selection (max {config.lag_max}) ===")
    print(sel.results.summary())
    print(f"{sel.criterion}: VAR({sel.var_order}) -> VECM with {sel.k_ar_diff} lag(s) in differences")

    print("\n=== VECM Estimation ===")
    print(fit.results.summary())

    print("\n=== Forecast error variance decomposition ===")
    print(fevd_frame(artifacts.fevd, fit.names, horizons=[1, config.fevd_horizon]))

    #%% Figures and report
    figures = {}
    if not args.no_plots:
        figures = save_figures(artifacts, args.outdir)
    report = write_report(artifacts, args.outdir, figures=figures)
    print(f"\nReport: {report}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
