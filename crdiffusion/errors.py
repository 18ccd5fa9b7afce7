"""Custom exceptions for the :mod:`crdiffusion` package."""
from __future__ import annotations


class CRDiffusionError(Exception):
    """Base exception for cosmic-ray diffusion errors."""


class ConfigurationError(CRDiffusionError, ValueError):
    """Invalid parameter or parameter combination supplied to a module."""


class DomainError(CRDiffusionError, LookupError):
    """A field sample is unavailable at the requested position."""


class PhysicsError(CRDiffusionError, ValueError):
    """A non-physical particle state such as a negative energy."""


class TableLoadError(CRDiffusionError, RuntimeError):
    """A lookup table could not be read or is malformed."""


__all__ = [
    "CRDiffusionError",
    "ConfigurationError",
    "DomainError",
    "PhysicsError",
    "TableLoadError",
]
