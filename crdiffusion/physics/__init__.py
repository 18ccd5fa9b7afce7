"""Field models, diffusion components and propagation modules."""
from . import (
    fields,
    diffusion_tensor,
    fieldlines,
    stepsize,
    stochastic,
    diffusion_sde,
    energy_loss,
)

__all__ = [
    "fields",
    "diffusion_tensor",
    "fieldlines",
    "stepsize",
    "stochastic",
    "diffusion_sde",
    "energy_loss",
]
