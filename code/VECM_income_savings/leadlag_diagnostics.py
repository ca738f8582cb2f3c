#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Dynamic diagnostics of a fitted VECM.

- Orthogonalized impulse responses from statsmodels' IRF analysis of the VECM
  (Cholesky decomposition of the residual covariance matrix: the first variable
  does not react on impact to the second shock).
- Optional residual-bootstrap bands for the impulse responses.
- Forecast error variance decomposition (FEVD).
- Error-correction term: deviation from the long-run relation β'Y_t.

Course: Quantitative Methods in Finance (QMF)
License: MIT
"""

import logging

import numpy as np
import pandas as pd

from leadlag_models import fit_vecm

logger = logging.getLogger(__name__)


def _orth_irfs(fit, periods):
    # statsmodels' orthogonalized responses, (periods + 1, k, k) as [h, response, impulse]
    return fit.results.irf(periods=max(periods, 1)).orth_irfs[:periods + 1]


def impulse_responses(fit, horizon=6):
    """
    Response of each variable to a one-unit orthogonalized shock in each
    variable, horizons 0..horizon.

    Returns
    -------
    np.ndarray
        Shape (k, k, horizon + 1), indexed [response, impulse, horizon].
    """
    if horizon < 0:
        raise ValueError("horizon must be non-negative")
    return np.transpose(_orth_irfs(fit, horizon), (1, 2, 0))


def bootstrap_irf_bands(fit, levels, horizon=6, repl=100, signif=0.05, seed=None):
    """
    Percentile bands for the orthogonalized impulse responses.

    Residuals are resampled with replacement, series are rebuilt recursively
    from the VAR representation of the VECM (same initial values), the VECM
    is re-estimated and its responses computed.

    Returns
    -------
    (lower, upper) : tuple of np.ndarray, each (k, k, horizon + 1)
    """
    if repl < 1:
        raise ValueError("repl must be at least 1")
    rng = np.random.default_rng(seed)

    y = levels.to_numpy(dtype=float)
    n, k = y.shape
    coefs = fit.results.var_rep          # (p, k, k)
    p = coefs.shape[0]
    resid = np.asarray(fit.results.resid)
    resid = resid - resid.mean(axis=0)

    # constant implied by the fitted equations: y_t = c + Σ A_i y_{t-i} + u_t
    lagged = sum(y[p - i - 1:n - i - 1] @ coefs[i].T for i in range(p))
    const = (y[p:] - lagged - np.asarray(fit.results.resid)).mean(axis=0)

    draws = np.empty((repl, k, k, horizon + 1))
    for b in range(repl):
        u = resid[rng.integers(0, len(resid), size=n - p)]
        ys = y.copy()
        for t in range(p, n):
            ys[t] = const + u[t - p]
            for i in range(p):
                ys[t] += coefs[i] @ ys[t - i - 1]
        boot = fit_vecm(
            pd.DataFrame(ys, columns=fit.names),
            fit.k_ar_diff,
            coint_rank=fit.coint_rank,
            deterministic=fit.deterministic,
        )
        draws[b] = impulse_responses(boot, horizon)

    logger.info("IRF bootstrap: %d replications, %.0f%% bands", repl, 100 * (1 - signif))
    lower = np.quantile(draws, signif / 2, axis=0)
    upper = np.quantile(draws, 1 - signif / 2, axis=0)
    return lower, upper


def variance_decomposition(fit, horizon=30):
    """
    Share of the h-step forecast error variance of each variable due to each
    orthogonalized shock, h = 1..horizon.

    Returns
    -------
    np.ndarray
        Shape (k, horizon, k), indexed [variable, h - 1, shock]; sums to one
        over shocks.
    """
    if horizon < 1:
        raise ValueError("horizon must be at least 1")
    theta = _orth_irfs(fit, horizon - 1)         # (horizon, k, k)
    contrib = np.cumsum(theta ** 2, axis=0)
    mse = contrib.sum(axis=2, keepdims=True)
    return np.transpose(contrib / mse, (1, 0, 2))


def fevd_frame(fevd, names, horizons=None):
    """FEVD array as a table indexed by (variable, horizon), one column per shock."""
    k, n_h, _ = fevd.shape
    horizons = list(horizons) if horizons is not None else list(range(1, n_h + 1))
    rows = {}
    for i, var in enumerate(names):
        for h in horizons:
            rows[(var, h)] = fevd[i, h - 1, :]
    out = pd.DataFrame.from_dict(rows, orient="index", columns=list(names))
    out.index = pd.MultiIndex.from_tuples(out.index, names=["variable", "horizon"])
    return out


def error_correction_term(levels, fit):
    """β'Y_t for every row of `levels` (deviation from the long-run equilibrium)."""
    beta = fit.beta
    ect = levels.loc[:, beta.index] @ beta
    ect.name = "ect"
    return ect
