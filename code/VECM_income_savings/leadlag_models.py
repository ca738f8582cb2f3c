#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Unit roots, transformation, cointegration and VECM estimation.

Main components
---------------
1) Stationarity check
   - Minimum number of differences for a series to be judged stationary,
     with the KPSS test (H0: stationarity) or the ADF test (H0: unit root).

2) Transformation
   - 100 * log-differences (percentage growth rates), and 100 * log-levels.

3) Cointegration (Engle–Granger two-step logic)
   - OLS of one series on the other:  B_t = a + b A_t + u_t
   - ADF test with drift on the residuals u_t (lag chosen by BIC).
     H0: residuals have a unit root (no cointegration)
     H1: residuals are stationary (cointegration)

4) VECM
   - Lag order chosen on a VAR in levels (information criterion),
     VECM lag in differences = VAR lag - 1 (at least 1).
   - Johansen maximum likelihood with one cointegrating relation and an
     unrestricted constant (statsmodels deterministic="co"):

       ΔY_t = α β' Y_{t-1} + Σ Γ_i ΔY_{t-i} + c + ε_t

Course: Quantitative Methods in Finance (QMF)
License: MIT
"""

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.api import VAR
from statsmodels.tsa.stattools import adfuller, coint, kpss
from statsmodels.tsa.vector_ar.vecm import VECM

from leadlag_errors import ModelConvergenceError, NumericPreconditionError

logger = logging.getLogger(__name__)

# smallest sample on which we run a unit root test
MIN_OBS = 12

# significance level -> key of the critical value dictionaries returned by statsmodels
KPSS_CRIT_KEYS = {0.01: "1%", 0.025: "2.5%", 0.05: "5%", 0.10: "10%"}
ADF_CRIT_KEYS = {0.01: "1%", 0.05: "5%", 0.10: "10%"}

CRITERIA = ("aic", "bic", "hqic", "fpe")

UNIT_ROOT_COLUMNS = [
    "series", "transform",
    "adf_stat", "adf_p_value", "adf_lags", "adf_crit_5",
    "kpss_stat", "kpss_p_value", "kpss_lags", "kpss_crit_5",
]


# =============================================================================
# Stationarity check
# =============================================================================

def _is_constant(x):
    x = np.asarray(x, dtype=float)
    return np.allclose(x, x[0])


def _check_series(x, name, stage="stationarity"):
    x = np.asarray(x, dtype=float)
    if x.size == 0:
        raise NumericPreconditionError(f"series {name!r} is empty", stage=stage)
    if not np.isfinite(x).all():
        raise NumericPreconditionError(
            f"series {name!r} has missing or infinite values", stage=stage
        )
    if x.size < MIN_OBS:
        raise NumericPreconditionError(
            f"series {name!r} has {x.size} observations, at least {MIN_OBS} needed",
            stage=stage,
        )
    if _is_constant(x):
        raise NumericPreconditionError(
            f"series {name!r} is constant, a unit root test is undefined", stage=stage
        )
    return x


def is_stationary(x, test="kpss", alpha=0.05):
    """
    Is `x` stationary at level `alpha`?

    KPSS: H0 stationarity, reject if the statistic exceeds the critical value.
    ADF:  H0 unit root, reject (stationary) if the statistic is below it.
    """
    if test == "kpss":
        key = KPSS_CRIT_KEYS.get(alpha)
    elif test == "adf":
        key = ADF_CRIT_KEYS.get(alpha)
    else:
        raise ValueError(f"unknown unit root test {test!r}, use 'kpss' or 'adf'")
    if key is None:
        raise ValueError(f"no tabulated critical value for alpha={alpha} with {test}")

    with warnings.catch_warnings():
        # p-values outside the KPSS lookup table only trigger a warning
        warnings.simplefilter("ignore", InterpolationWarning)
        if test == "kpss":
            stat, _, _, crit = kpss(x, regression="c", nlags="auto")
            return stat <= crit[key]
        stat, _, _, _, crit, _ = adfuller(x, regression="c", autolag="AIC")
        return stat < crit[key]


def ndiffs(x, alpha=0.05, test="kpss", max_d=2, name=None):
    """
    Minimum number of differences needed for `x` to be stationary.

    Parameters
    ----------
    x : array-like
        Series without missing values.
    alpha : float
        Significance level of the unit root test.
    test : str
        'kpss' (default) or 'adf'.
    max_d : int
        Largest order tried.

    Returns
    -------
    int
        d in 0..max_d.
    """
    name = name or getattr(x, "name", None) or "series"
    x = _check_series(x, name)

    for d in range(max_d + 1):
        if d > 0:
            x = np.diff(x)
            if x.size < MIN_OBS:
                raise NumericPreconditionError(
                    f"series {name!r} too short to difference {d} times", stage="stationarity"
                )
        # a series that becomes constant after differencing is stationary
        if _is_constant(x) or is_stationary(x, test=test, alpha=alpha):
            logger.info("%s: %d difference(s) needed (%s, alpha=%s)", name, d, test, alpha)
            return d

    logger.warning("%s: still not stationary after %d differences", name, max_d)
    return max_d


def unit_root_table(wide):
    """ADF (H0: unit root) and KPSS (H0: stationarity) in levels and first differences."""
    rows = []
    for col in wide.columns:
        for label, x in (("level", wide[col]), ("first difference", wide[col].diff())):
            x = x.dropna()
            if _is_constant(x):
                # tests undefined, e.g. first difference of an exact linear trend
                logger.warning("%s (%s) is constant: no unit root test", col, label)
                rows.append({"series": col, "transform": label})
                continue
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", InterpolationWarning)
                adf_stat, adf_p, adf_lag, _, adf_crit, _ = adfuller(x, regression="c", autolag="AIC")
                kpss_stat, kpss_p, kpss_lags, kpss_crit = kpss(x, regression="c", nlags="auto")
            rows.append({
                "series": col,
                "transform": label,
                "adf_stat": adf_stat,
                "adf_p_value": adf_p,
                "adf_lags": adf_lag,
                "adf_crit_5": adf_crit["5%"],
                "kpss_stat": kpss_stat,
                "kpss_p_value": kpss_p,
                "kpss_lags": kpss_lags,
                "kpss_crit_5": kpss_crit["5%"],
            })
    return pd.DataFrame(rows, columns=UNIT_ROOT_COLUMNS)


# =============================================================================
# Transformation
# =============================================================================

def log_levels(wide, scale=100.0):
    """scale * log(x); fails on non-positive values instead of producing NaN."""
    for col in wide.columns:
        bad = wide[col] <= 0
        if bad.any():
            first = wide.index[bad.to_numpy()][0]
            raise NumericPreconditionError(
                f"log undefined: series {col!r} is {wide.loc[first, col]} in {first}",
                stage="transform",
            )
    return scale * np.log(wide)


def log_difference(wide, orders, scale=100.0):
    """
    Percentage log-differences: scale * Δ^d log(x), d = max(orders[col], 1).

    Rows with a missing value after differencing are dropped, so the result
    has len(wide) - max(d) rows.
    """
    logs = log_levels(wide, scale=1.0)

    out = {}
    for col in wide.columns:
        d = max(int(orders.get(col, 1)), 1)
        x = logs[col]
        for _ in range(d):
            x = x.diff()
        out[col] = scale * x

    growth = pd.DataFrame(out, index=wide.index).dropna()
    if growth.empty:
        raise NumericPreconditionError(
            "no observation left after differencing", stage="transform"
        )
    return growth


# =============================================================================
# Cointegration test
# =============================================================================

@dataclass(frozen=True)
class CointegrationResult:
    dependent: str
    regressor: str
    ols: object
    residuals: pd.Series
    adf_stat: float
    p_value: float
    used_lag: int
    nobs: int
    critical_values: dict
    cointegrated: bool
    eg_stat: float
    eg_p_value: float


def cointegration_test(dependent, regressor):
    """
    OLS of `dependent` on a constant and `regressor`, then ADF with drift on
    the residuals (autolag BIC).

    The regression is not symmetric: by convention savings (B) is the
    dependent variable and income (A) the regressor. The Engle–Granger
    statistic (statsmodels `coint`, which uses the proper critical values for
    estimated residuals) is reported alongside.
    """
    y_name = dependent.name or "dependent"
    x_name = regressor.name or "regressor"
    if x_name == y_name:
        x_name = f"{x_name}_regressor"

    df = pd.concat([dependent.rename(y_name), regressor.rename(x_name)], axis=1).dropna()
    if len(df) < MIN_OBS:
        raise NumericPreconditionError(
            f"{len(df)} observations for the cointegrating regression, at least {MIN_OBS} needed",
            stage="cointegration",
        )

    X = sm.add_constant(df[x_name], has_constant="add")
    if np.linalg.matrix_rank(X.to_numpy()) < X.shape[1]:
        raise NumericPreconditionError(
            f"regression of {y_name!r} on {x_name!r} is rank-deficient", stage="cointegration"
        )

    ols = sm.OLS(df[y_name], X).fit()
    resid = ols.resid
    if _is_constant(resid):
        raise NumericPreconditionError(
            f"{y_name!r} is an exact linear function of {x_name!r}", stage="cointegration"
        )

    # H0: the residuals have a unit root
    stat, pval, usedlag, nobs, crit, _ = adfuller(resid, regression="c", autolag="BIC")
    eg_stat, eg_pval, _ = coint(df[y_name], df[x_name], trend="c", autolag="bic")

    result = CointegrationResult(
        dependent=y_name,
        regressor=x_name,
        ols=ols,
        residuals=resid,
        adf_stat=float(stat),
        p_value=float(pval),
        used_lag=int(usedlag),
        nobs=int(nobs),
        critical_values=dict(crit),
        cointegrated=bool(stat < crit["5%"]),
        eg_stat=float(eg_stat),
        eg_p_value=float(eg_pval),
    )
    logger.info(
        "Cointegration %s ~ %s: ADF = %.3f (5%% crit %.3f), cointegrated=%s",
        y_name, x_name, result.adf_stat, crit["5%"], result.cointegrated,
    )
    return result


# =============================================================================
# VECM
# =============================================================================

@dataclass(frozen=True)
class LagSelection:
    criterion: str
    var_order: int
    k_ar_diff: int
    selected_orders: dict
    results: object


@dataclass(frozen=True)
class VECMFit:
    results: object
    names: list
    index: pd.Index
    k_ar_diff: int
    coint_rank: int = 1
    deterministic: str = "co"

    @property
    def alpha(self):
        """Loadings (speed of adjustment), one per equation."""
        return pd.Series(self.results.alpha[:, 0], index=self.names, name="alpha")

    @property
    def beta(self):
        """Cointegrating vector, normalised on the first variable."""
        return pd.Series(self.results.beta[:, 0], index=self.names, name="beta")

    @property
    def gamma(self):
        return self.results.gamma

    @property
    def det_coef(self):
        return self.results.det_coef

    @property
    def residuals(self):
        resid = np.asarray(self.results.resid)
        return pd.DataFrame(resid, index=self.index[-len(resid):], columns=self.names)


def select_var_order(levels, lag_max=12, criterion="hqic"):
    """
    Lag order of a VAR in levels (with constant) minimising `criterion`
    over 0..lag_max, and the implied VECM lag max(p - 1, 1).
    """
    if criterion not in CRITERIA:
        raise ValueError(f"unknown information criterion {criterion!r}, use one of {CRITERIA}")
    if lag_max < 1:
        raise ValueError("lag_max must be at least 1")
    nobs, k = levels.shape
    if nobs - lag_max <= k * lag_max + 1:
        raise NumericPreconditionError(
            f"{nobs} observations are too few to search up to {lag_max} lags",
            stage="lag selection",
        )

    try:
        sel = VAR(levels.reset_index(drop=True)).select_order(maxlags=lag_max, trend="c")
    except (ValueError, np.linalg.LinAlgError) as exc:
        raise NumericPreconditionError(
            f"VAR lag selection failed: {exc}", stage="lag selection"
        ) from exc

    var_order = int(sel.selected_orders[criterion])
    selection = LagSelection(
        criterion=criterion,
        var_order=var_order,
        k_ar_diff=max(var_order - 1, 1),
        selected_orders=dict(sel.selected_orders),
        results=sel,
    )
    logger.info(
        "VAR lag order (%s, max %d) = %d -> VECM lag in differences = %d",
        criterion, lag_max, var_order, selection.k_ar_diff,
    )
    return selection


def fit_vecm(levels, k_ar_diff, coint_rank=1, deterministic="co"):
    """Johansen ML estimate of a VECM; fails rather than return an unusable fit."""
    k_ar_diff = max(int(k_ar_diff), 1)
    try:
        res = VECM(
            levels.reset_index(drop=True),
            k_ar_diff=k_ar_diff,
            coint_rank=coint_rank,
            deterministic=deterministic,  # "co": constant outside the cointegration relation
        ).fit(method="ml")
    except np.linalg.LinAlgError as exc:
        raise ModelConvergenceError(f"VECM estimation failed: {exc}") from exc

    for label, est in (("alpha", res.alpha), ("beta", res.beta),
                       ("gamma", res.gamma), ("sigma_u", res.sigma_u)):
        if not np.isfinite(np.asarray(est, dtype=float)).all():
            raise ModelConvergenceError(f"VECM estimate {label} is not finite")

    return VECMFit(
        results=res,
        names=list(levels.columns),
        index=levels.index,
        k_ar_diff=k_ar_diff,
        coint_rank=coint_rank,
        deterministic=deterministic,
    )


def estimate_vecm(levels, lag_max=12, criterion="hqic", cointegrated=None):
    """
    Lag selection then VECM fit with one cointegrating relation.

    `cointegrated` is the conclusion of `cointegration_test`, if it was run;
    fitting rank 1 on series found not cointegrated is allowed but warned about.
    """
    if cointegrated is False:
        msg = ("fitting a VECM with one cointegrating relation although the "
               "cointegration test did not reject a unit root in the residuals")
        logger.warning(msg)
        warnings.warn(msg, UserWarning, stacklevel=2)

    selection = select_var_order(levels, lag_max=lag_max, criterion=criterion)
    fit = fit_vecm(levels, selection.k_ar_diff)
    logger.info(
        "VECM beta = %s, alpha = %s",
        np.round(fit.beta.to_numpy(), 4), np.round(fit.alpha.to_numpy(), 4),
    )
    return selection, fit
