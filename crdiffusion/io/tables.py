"""Table I/O and interpolation utilities.

Energy-loss tables are plain text with two whitespace-separated columns and
``#`` comment lines: the energy per nucleon in eV and the loss rate in
eV/Mpc.  Values are converted to SI on load.  Field grids are read from CSV
files with the long-format columns ``x, y, z, bx, by, bz`` (metres, tesla).
"""
from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from .. import constants
from ..errors import TableLoadError
from ..warnings import TableWarning

logger = logging.getLogger(__name__)

__all__ = [
    "DATA_DIR",
    "DATA_PATH_ENV",
    "EnergyLossTable",
    "get_data_path",
    "load_energy_loss_table",
    "load_field_grid_frame",
]

DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_PATH_ENV = "CRDIFFUSION_DATA_PATH"

# power-law index used above the last tabulated energy
EXTRAPOLATION_INDEX: float = 0.4


def get_data_path(filename: str, data_path: Optional[Union[str, Path]] = None) -> Path:
    """Resolve ``filename`` in ``data_path``, ``$CRDIFFUSION_DATA_PATH`` or the package data."""

    if data_path is not None:
        base = Path(data_path)
    elif os.environ.get(DATA_PATH_ENV):
        base = Path(os.environ[DATA_PATH_ENV])
    else:
        base = DATA_DIR
    return base / filename


@dataclass(frozen=True)
class EnergyLossTable:
    """Loss rate ``b(E) = -dE/dx`` tabulated against energy per nucleon.

    Attributes
    ----------
    energy:
        Strictly increasing energies per nucleon (J).
    loss_rate:
        Loss rates (J/m) at ``energy``.
    """

    energy: np.ndarray
    loss_rate: np.ndarray

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "EnergyLossTable":
        """Convert a frame with ``energy_eV`` and ``rate_eV_per_Mpc`` columns."""

        required = {"energy_eV", "rate_eV_per_Mpc"}
        missing = required.difference(df.columns)
        if missing:
            names = ", ".join(sorted(missing))
            raise TableLoadError(f"energy loss table is missing required columns: {names}")
        work = df[["energy_eV", "rate_eV_per_Mpc"]].apply(pd.to_numeric, errors="coerce")
        if work.isna().any().any():
            raise TableLoadError("energy loss table contains non-numeric or missing values")
        if len(work) < 2:
            raise TableLoadError("energy loss table needs at least two rows")
        if (work["energy_eV"] <= 0).any() or (work["rate_eV_per_Mpc"] < 0).any():
            raise TableLoadError("energy loss table requires positive energies and non-negative rates")
        if work["energy_eV"].duplicated().any():
            raise TableLoadError("energy loss table has duplicate energies")
        if not work["energy_eV"].is_monotonic_increasing:
            warnings.warn("energy loss table was not sorted by energy; sorting", TableWarning)
            work = work.sort_values("energy_eV")
        energy = work["energy_eV"].to_numpy(dtype=float) * constants.EV
        rate = work["rate_eV_per_Mpc"].to_numpy(dtype=float) * constants.EV / constants.MPC
        energy.setflags(write=False)
        rate.setflags(write=False)
        return cls(energy=energy, loss_rate=rate)

    @property
    def threshold(self) -> float:
        return float(self.energy[0])

    def rate(self, energy_per_nucleon: float) -> float:
        """Return the loss rate at ``energy_per_nucleon``.

        Below the first node the rate is zero.  From the first up to the
        last node the table is interpolated linearly; at and above the last
        node the rate follows ``b_last * (E / E_last)**0.4``.
        """

        if energy_per_nucleon < self.energy[0]:
            return 0.0
        if energy_per_nucleon < self.energy[-1]:
            return float(np.interp(energy_per_nucleon, self.energy, self.loss_rate))
        return float(self.loss_rate[-1] * (energy_per_nucleon / self.energy[-1]) ** EXTRAPOLATION_INDEX)


def load_energy_loss_table(path: Union[str, Path]) -> EnergyLossTable:
    """Read an energy loss table from ``path``."""

    source = Path(path)
    if not source.is_file():
        raise TableLoadError(f"could not open energy loss table {source}")
    try:
        df = pd.read_csv(
            source,
            comment="#",
            sep=r"\s+",
            header=None,
            names=["energy_eV", "rate_eV_per_Mpc"],
            usecols=[0, 1],
        )
    except (OSError, ValueError, pd.errors.ParserError) as exc:
        raise TableLoadError(f"failed to parse energy loss table {source}: {exc}") from exc
    table = EnergyLossTable.from_frame(df)
    logger.info("Loaded energy loss table %s with %d rows", source, len(table.energy))
    return table


def load_field_grid_frame(path: Union[str, Path]) -> pd.DataFrame:
    """Read a long-format field grid CSV file."""

    source = Path(path)
    if not source.is_file():
        raise TableLoadError(f"could not open field grid {source}")
    try:
        return pd.read_csv(source)
    except (OSError, ValueError, pd.errors.ParserError) as exc:
        raise TableLoadError(f"failed to parse field grid {source}: {exc}") from exc
