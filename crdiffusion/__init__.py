"""Diffusive propagation of cosmic-ray candidates through magnetic fields."""
from . import constants
from .candidate import Candidate, ParticleState
from .errors import ConfigurationError, CRDiffusionError, DomainError
from .module import Module
from .physics.diffusion_sde import DiffusionSDE

__all__ = [
    "constants",
    "Candidate",
    "ParticleState",
    "CRDiffusionError",
    "ConfigurationError",
    "DomainError",
    "Module",
    "DiffusionSDE",
]
