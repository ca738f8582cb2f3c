#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Figures of the income / savings VECM report.

Each function returns a matplotlib Figure; the caller decides where to save it
(fig/*.pdf by default).

Course: Quantitative Methods in Finance (QMF)
License: MIT
"""

import matplotlib.pyplot as plt
import numpy as np


def _require_data(x, what):
    if x is None or np.size(x) == 0:
        raise ValueError(f"nothing to plot: {what} is empty")


def plot_series(wide, labels=None):
    """Both series in levels, the second one on a secondary axis."""
    _require_data(wide, "wide table")
    labels = labels or {}
    df = wide.rename(columns=labels)
    first, second = df.columns[:2]
    ax = df.plot(secondary_y=[second], figsize=(10, 5), linewidth=1.5,
                 title=f"{first} and {second}")
    ax.set_xlabel("Date")
    ax.set_ylabel(first)
    ax.right_ax.set_ylabel(second)
    ax.grid(True, alpha=0.3)
    fig = ax.get_figure()
    fig.tight_layout()
    return fig


def plot_irf_grid(irf, names, bands=None):
    """
    Grid of orthogonalized impulse responses: row = responding variable,
    column = shocked variable.
    """
    _require_data(irf, "impulse responses")
    k = len(names)
    horizons = np.arange(irf.shape[2])

    fig, axes = plt.subplots(k, k, figsize=(10, 8), sharex=True, squeeze=False)
    for i in range(k):
        for j in range(k):
            ax = axes[i][j]
            ax.plot(horizons, irf[i, j], linewidth=1.5)
            if bands is not None:
                lower, upper = bands
                ax.fill_between(horizons, lower[i, j], upper[i, j], alpha=0.2)
            ax.axhline(0, color="black", linewidth=0.8)
            ax.set_title(f"{names[j]} -> {names[i]}", fontsize=10)
            ax.grid(True, alpha=0.3)
    for ax in axes[-1]:
        ax.set_xlabel("Months after the shock")
    fig.suptitle("Orthogonalized impulse responses")
    fig.tight_layout()
    return fig


def plot_fevd_grid(fevd, names):
    """One panel per variable: share of forecast error variance by shock."""
    _require_data(fevd, "variance decomposition")
    k, n_h, _ = fevd.shape
    horizons = np.arange(1, n_h + 1)

    fig, axes = plt.subplots(k, 1, figsize=(10, 4 * k), sharex=True, squeeze=False)
    for i in range(k):
        ax = axes[i][0]
        ax.stackplot(horizons, fevd[i].T, labels=[f"{name} shock" for name in names], alpha=0.8)
        ax.set_ylim(0, 1)
        ax.set_title(f"FEVD of {names[i]}")
        ax.set_ylabel("Share")
        ax.legend(loc="lower right")
    axes[-1][0].set_xlabel("Horizon (months)")
    fig.tight_layout()
    return fig


def plot_ect(ect):
    """Error-correction term with its sample mean as reference line."""
    _require_data(ect, "error-correction term")
    ax = ect.plot(figsize=(10, 4), linewidth=1.5,
                  title="Error-correction term: deviation from the long-run relation")
    ax.axhline(ect.mean(), color="red", linestyle="--", linewidth=1, label="sample mean")
    ax.set_xlabel("Date")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig = ax.get_figure()
    fig.tight_layout()
    return fig
