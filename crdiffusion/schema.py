"""Configuration schema for diffusion propagation setups.

The Pydantic models mirror the structure of the YAML files read by
:func:`crdiffusion.config_utils.load_config`.  Lengths are given in parsec
and field strengths in microgauss; conversion to SI happens when the
modules are built.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .errors import ConfigurationError


class DiffusionParams(BaseModel):
    """Parameters of the :class:`~crdiffusion.physics.diffusion_sde.DiffusionSDE` module."""

    tolerance: float = Field(1e-4, gt=0.0, le=1.0, description="Field-line tracing tolerance relative to 1 kpc")
    min_step_pc: float = Field(10.0, gt=0.0, description="Minimum propagation step [pc]")
    max_step_pc: float = Field(1000.0, gt=0.0, description="Maximum propagation step [pc]")
    epsilon: float = Field(0.1, ge=0.0, le=1.0, description="Ratio D_perp / D_par")
    alpha: float = Field(1.0 / 3.0, description="Rigidity power-law index of the diffusion coefficient")
    scale: float = Field(1.0, ge=0.0, description="Normalisation of the diffusion coefficient")

    @model_validator(mode="after")
    def _check_step_order(self) -> "DiffusionParams":
        if self.min_step_pc > self.max_step_pc:
            raise ConfigurationError(
                f"diffusion.min_step_pc ({self.min_step_pc}) must not exceed max_step_pc ({self.max_step_pc})"
            )
        return self


class FieldConfig(BaseModel):
    """Magnetic field selection.

    ``uniform`` uses ``b_muG``; ``turbulent`` uses ``b_rms_muG``,
    ``l_min_pc``, ``l_max_pc``, ``n_modes``, ``spectral_index``, ``seed`` and
    the optional regular component ``b_muG``; ``grid`` reads ``grid_path``.
    """

    kind: Literal["uniform", "turbulent", "grid"] = "uniform"
    b_muG: Optional[List[float]] = Field(None, description="Regular field vector [muG]")
    b_rms_muG: float = Field(1.0, ge=0.0, description="RMS turbulent field strength [muG]")
    l_min_pc: float = Field(1.0, gt=0.0, description="Smallest turbulent scale [pc]")
    l_max_pc: float = Field(100.0, gt=0.0, description="Largest turbulent scale [pc]")
    n_modes: int = Field(64, ge=1)
    spectral_index: float = Field(5.0 / 3.0, description="Index of the 1D turbulence spectrum")
    seed: Optional[int] = None
    grid_path: Optional[Path] = Field(None, description="CSV file with columns x,y,z [m] and bx,by,bz [T]")
    periodic: bool = False

    @field_validator("b_muG")
    def _check_vector(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        if value is not None and len(value) != 3:
            raise ConfigurationError("field.b_muG must have three components")
        return value

    @model_validator(mode="after")
    def _check_kind(self) -> "FieldConfig":
        if self.kind == "uniform" and self.b_muG is None:
            raise ConfigurationError("field.b_muG is required for a uniform field")
        if self.kind == "turbulent" and self.l_min_pc >= self.l_max_pc:
            raise ConfigurationError("field.l_min_pc must be smaller than field.l_max_pc")
        if self.kind == "grid" and self.grid_path is None:
            raise ConfigurationError("field.grid_path is required for a grid field")
        return self


class EnergyLossConfig(BaseModel):
    """Electron pair production settings."""

    enabled: bool = False
    photon_field: Literal["CMB", "IRB", "CMB_IRB"] = "CMB"
    data_path: Optional[Path] = None


class Config(BaseModel):
    """Top-level configuration object."""

    diffusion: DiffusionParams = DiffusionParams()
    field: FieldConfig
    energy_loss: EnergyLossConfig = EnergyLossConfig()


__all__ = ["DiffusionParams", "FieldConfig", "EnergyLossConfig", "Config"]
