#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Income / savings report: run every stage and write the results.

run_pipeline(config) executes, in order:

1) fetch the two series (FRED or local cache) and pivot to a monthly table
2) minimum differencing order of each series (KPSS)
3) 100 * log-differences
4) cointegration: OLS of savings growth on income growth, ADF on residuals
5) VECM on 100 * log-levels (lag chosen by an information criterion, rank 1)
6) impulse responses, variance decomposition, error-correction term

write_report() turns the results into report.md next to the figures.

Course: Quantitative Methods in Finance (QMF)
License: MIT
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from leadlag_config import label
from leadlag_data import fetch_observations, pivot_wide
from leadlag_diagnostics import (bootstrap_irf_bands, error_correction_term,
                                 fevd_frame, impulse_responses,
                                 variance_decomposition)
from leadlag_models import (cointegration_test, estimate_vecm, log_difference,
                            log_levels, ndiffs, unit_root_table)
from leadlag_plots import plot_ect, plot_fevd_grid, plot_irf_grid, plot_series

logger = logging.getLogger(__name__)

FIGURES = {
    "series": "income_savings_levels.pdf",
    "irf": "income_savings_irf.pdf",
    "fevd": "income_savings_fevd.pdf",
    "ect": "income_savings_ect.pdf",
}


@dataclass(frozen=True)
class ReportArtifacts:
    config: object
    long: pd.DataFrame
    wide: pd.DataFrame
    orders: dict
    unit_roots: pd.DataFrame
    growth: pd.DataFrame
    coint: object
    levels: pd.DataFrame
    lag_selection: object
    vecm: object
    irf: np.ndarray
    irf_bands: Optional[tuple]
    fevd: np.ndarray
    ect: pd.Series


def run_pipeline(config, reader=None, long=None):
    """
    Run the whole analysis for `config`.

    `long` (long-format observations, e.g. from the CSV cache) skips the
    download; otherwise `reader` is passed to fetch_observations.
    """
    names = config.series_ids

    # ------------------------------------------------------------
    # 1) Data
    # ------------------------------------------------------------
    if long is None:
        long = fetch_observations(names, config.start_date, config.end_date, reader=reader)
    wide = pivot_wide(long, names)
    logger.info("Sample: %s to %s, %d months", wide.index[0], wide.index[-1], len(wide))

    # ------------------------------------------------------------
    # 2) Unit roots: how many differences?
    # ------------------------------------------------------------
    orders = {col: ndiffs(wide[col], alpha=config.alpha, name=col) for col in wide.columns}
    unit_roots = unit_root_table(wide)

    # ------------------------------------------------------------
    # 3) Growth rates in percent
    # ------------------------------------------------------------
    growth = log_difference(wide, orders)

    # ------------------------------------------------------------
    # 4) Cointegration: savings (B) regressed on income (A)
    # ------------------------------------------------------------
    coint_res = cointegration_test(growth[config.series_b], growth[config.series_a])

    # ------------------------------------------------------------
    # 5) VECM in log-levels
    # ------------------------------------------------------------
    levels = log_levels(wide)
    selection, fit = estimate_vecm(
        levels,
        lag_max=config.lag_max,
        criterion=config.criterion,
        cointegrated=coint_res.cointegrated,
    )

    # ------------------------------------------------------------
    # 6) Diagnostics
    # ------------------------------------------------------------
    irf = impulse_responses(fit, config.irf_horizon)
    bands = None
    if config.bootstrap_repl:
        bands = bootstrap_irf_bands(
            fit, levels, horizon=config.irf_horizon,
            repl=config.bootstrap_repl, seed=config.seed,
        )
    fevd = variance_decomposition(fit, config.fevd_horizon)
    ect = error_correction_term(levels, fit)

    return ReportArtifacts(
        config=config,
        long=long,
        wide=wide,
        orders=orders,
        unit_roots=unit_roots,
        growth=growth,
        coint=coint_res,
        levels=levels,
        lag_selection=selection,
        vecm=fit,
        irf=irf,
        irf_bands=bands,
        fevd=fevd,
        ect=ect,
    )


def save_figures(artifacts, outdir):
    """Draw the four charts into `outdir` (PDF); returns {name: path}."""
    os.makedirs(outdir, exist_ok=True)
    names = artifacts.config.series_ids
    figures = {
        "series": plot_series(artifacts.wide, labels={n: label(n) for n in names}),
        "irf": plot_irf_grid(artifacts.irf, names, bands=artifacts.irf_bands),
        "fevd": plot_fevd_grid(artifacts.fevd, names),
        "ect": plot_ect(artifacts.ect),
    }
    paths = {}
    for key, fig in figures.items():
        path = os.path.join(outdir, FIGURES[key])
        fig.savefig(path)
        plt.close(fig)
        paths[key] = path
    logger.info("Saved %d figures to %s", len(paths), outdir)
    return paths


def _fmt(df):
    return "```\n" + df.to_string(float_format=lambda z: f"{z: .4f}") + "\n```"


def leadership_text(fit):
    """
    Prose on who adjusts to the long-run relation.

    A variable error-corrects when its loading has the opposite sign of its
    coefficient in the cointegrating vector.
    """
    alpha = fit.alpha
    beta = fit.beta
    pvalues = pd.Series(fit.results.pvalues_alpha[:, 0], index=fit.names)
    adjusters = [n for n in fit.names if alpha[n] * beta[n] < 0 and pvalues[n] < 0.05]

    lines = []
    for n in fit.names:
        lines.append(
            f"- {label(n)} ({n}): loading α = {alpha[n]:.4f} (p-value {pvalues[n]:.3f})"
        )
    if len(adjusters) == 1:
        follower = adjusters[0]
        leader = [n for n in fit.names if n != follower][0]
        lines.append(
            f"\nOnly {follower} moves back toward the long-run relation: deviations are "
            f"corrected by {follower}, so {leader} leads and {follower} follows."
        )
    elif len(adjusters) == 2:
        lines.append("\nBoth series adjust to deviations from the long-run relation: "
                     "there is no single leader.")
    else:
        lines.append("\nNeither loading is significantly error-correcting at 5%: "
                     "the long-run relation does not identify a leader.")
    return "\n".join(lines)


def write_report(artifacts, outdir, figures=None):
    """Write report.md (prose, tables, figure links) in `outdir`; returns its path."""
    os.makedirs(outdir, exist_ok=True)
    cfg = artifacts.config
    a, b = cfg.series_a, cfg.series_b
    wide = artifacts.wide
    co = artifacts.coint
    sel = artifacts.lag_selection
    fit = artifacts.vecm
    figures = figures or {}

    def fig_link(key):
        if key not in figures:
            return ""
        return f"\nFigure: [{FIGURES[key]}]({os.path.basename(figures[key])})\n"

    coef = pd.DataFrame({"alpha (loading)": fit.alpha, "beta (cointegrating vector)": fit.beta})
    irf_h0 = pd.DataFrame(artifacts.irf[:, :, 0], index=fit.names,
                          columns=[f"{n} shock" for n in fit.names])
    irf_last = pd.DataFrame(artifacts.irf[:, :, -1], index=fit.names,
                            columns=[f"{n} shock" for n in fit.names])
    fevd_h = [h for h in (1, 6, 12, cfg.fevd_horizon) if h <= cfg.fevd_horizon]
    fevd_tab = fevd_frame(artifacts.fevd, fit.names, horizons=sorted(set(fevd_h)))
    ect = artifacts.ect

    verdict = "are" if co.cointegrated else "are not"
    sections = [
        f"# {label(a)} and {label(b)}: who leads?",
        "",
        f"Monthly FRED series {a} ({label(a)}) and {b} ({label(b)}), "
        f"{wide.index[0]} to {wide.index[-1]} ({len(wide)} months).",
        fig_link("series"),
        "## 1. Unit roots",
        "",
        "ADF (H0: unit root) and KPSS (H0: stationarity) in levels and first differences.",
        "",
        _fmt(artifacts.unit_roots.set_index(["series", "transform"])),
        "",
        "Differences needed (KPSS, "
        f"{cfg.alpha:.0%}): " + ", ".join(f"{k} = {v}" for k, v in artifacts.orders.items())
        + ". Each series is log-differenced at least once and multiplied by 100.",
        "",
        "## 2. Cointegration",
        "",
        f"OLS of {co.dependent} growth on {co.regressor} growth:",
        "",
        "```\n" + co.ols.summary().as_text() + "\n```",
        "",
        f"ADF on the residuals (drift, lag {co.used_lag} by BIC): statistic {co.adf_stat:.3f}, "
        f"p-value {co.p_value:.4f}, 5% critical value {co.critical_values['5%']:.3f}. "
        f"Engle–Granger statistic {co.eg_stat:.3f} (p-value {co.eg_p_value:.4f}).",
        "",
        f"The residuals are {'stationary' if co.cointegrated else 'not stationary'}: "
        f"the series {verdict} cointegrated at 5%.",
        "",
        "## 3. VECM",
        "",
        f"VAR in log-levels, lag orders selected up to {cfg.lag_max}: "
        + ", ".join(f"{k.upper()} = {v}" for k, v in sel.selected_orders.items())
        + f". Using {sel.criterion.upper()}: VAR({sel.var_order}), "
        f"hence {sel.k_ar_diff} lag(s) in differences. Rank 1, constant outside the "
        "cointegrating relation, maximum likelihood.",
        "",
        _fmt(coef),
        "",
        leadership_text(fit),
        "",
        "## 4. Impulse responses",
        "",
        f"Orthogonalized responses (Cholesky, {a} ordered first) on impact:",
        "",
        _fmt(irf_h0),
        "",
        f"and after {cfg.irf_horizon} months:",
        "",
        _fmt(irf_last),
        fig_link("irf"),
        "## 5. Forecast error variance decomposition",
        "",
        _fmt(fevd_tab),
        fig_link("fevd"),
        "## 6. Error-correction term",
        "",
        f"β'Y_t has sample mean {ect.mean():.4f}; its last value ({ect.index[-1]}) is "
        f"{ect.iloc[-1]:.4f}, {'above' if ect.iloc[-1] > ect.mean() else 'below'} the mean.",
        fig_link("ect"),
    ]

    path = os.path.join(outdir, "report.md")
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(sections) + "\n")
    logger.info("Report written to %s", path)
    return path
