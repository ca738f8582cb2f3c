#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Errors raised by the income / savings VECM report.

Each error carries the pipeline stage that failed so the command line can
print a message pointing to it, e.g. ``[transform] log of non-positive value``.

Course: Quantitative Methods in Finance (QMF)
License: MIT
"""


class LeadLagError(Exception):
    """Base class: a pipeline stage could not complete."""

    def __init__(self, message, stage="pipeline"):
        super().__init__(message)
        self.stage = stage

    def __str__(self):
        return f"[{self.stage}] {super().__str__()}"


class DataAcquisitionError(LeadLagError):
    """Unknown series, empty date range, or network failure."""

    def __init__(self, message, stage="fetch"):
        super().__init__(message, stage=stage)


class NumericPreconditionError(LeadLagError, ValueError):
    """Input violates a numeric precondition (log of x <= 0, constant series, ...)."""


class ModelConvergenceError(LeadLagError):
    """The VECM estimate is not usable (non-finite or singular)."""

    def __init__(self, message, stage="vecm"):
        super().__init__(message, stage=stage)
