"""Structured warning classes for the :mod:`crdiffusion` package."""
from __future__ import annotations


class CRDiffusionWarning(UserWarning):
    """Base warning class for crdiffusion."""


class NumericalWarning(CRDiffusionWarning):
    """Degraded accuracy or numerical stability warnings."""


class TableWarning(CRDiffusionWarning):
    """Table loading or fallback warnings."""


__all__ = [
    "CRDiffusionWarning",
    "NumericalWarning",
    "TableWarning",
]
