"""Continuous energy loss of nuclei by electron-positron pair production.

The loss rate per nucleon is read from a table computed for a given photon
background.  For a nucleus of charge ``Z`` the loss over a comoving step
``dx`` at redshift ``z`` is

``dE = Z^2 * b(E/A * (1 + z)) * (1 + z)^2 * dx / (1 + z)``

which is capped at the current energy.
"""
from __future__ import annotations

import logging
import math
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .. import constants
from ..candidate import Candidate
from ..errors import ConfigurationError
from ..io import tables
from ..module import Module

logger = logging.getLogger(__name__)

__all__ = ["PhotonField", "ElectronPairProduction"]


class PhotonField(str, Enum):
    """Photon backgrounds with shipped loss tables."""

    CMB = "CMB"
    IRB = "IRB"
    CMB_IRB = "CMB_IRB"

    @property
    def filename(self) -> str:
        return f"epair_{self.value}.txt"

    @property
    def label(self) -> str:
        return self.value.replace("_", " and ")


class ElectronPairProduction(Module):
    """Deterministic pair-production energy loss for nuclei.

    Parameters
    ----------
    photon_field:
        Photon background; selects the loss table file.
    data_path:
        Directory holding the table files.  Defaults to
        ``$CRDIFFUSION_DATA_PATH`` or the package data directory.
    table:
        Pre-loaded table; skips file loading when given.
    """

    def __init__(
        self,
        photon_field: Union[PhotonField, str] = PhotonField.CMB,
        data_path: Optional[Union[str, Path]] = None,
        table: Optional[tables.EnergyLossTable] = None,
    ) -> None:
        self.data_path = data_path
        self.set_photon_field(photon_field, table=table)

    def set_photon_field(
        self,
        photon_field: Union[PhotonField, str],
        table: Optional[tables.EnergyLossTable] = None,
    ) -> None:
        try:
            field = PhotonField(photon_field)
        except ValueError as exc:
            raise ConfigurationError(f"ElectronPairProduction: unknown photon background {photon_field!r}") from exc
        if table is None:
            table = tables.load_energy_loss_table(tables.get_data_path(field.filename, self.data_path))
        self.photon_field = field
        self.table = table
        self.description = f"ElectronPairProduction: {field.label}"
        logger.info(
            "ElectronPairProduction: %s table with threshold %.3e eV per nucleon",
            field.label,
            table.threshold / constants.EV,
        )

    def process(self, candidate: Candidate) -> None:
        current = candidate.current
        if not current.is_nucleus:
            return
        Z = current.charge_number
        if Z < 1:
            return
        A = current.mass_number
        E = current.energy
        z = candidate.redshift
        rate = self.table.rate(E / A * (1.0 + z))
        if rate == 0.0:
            return

        # comoving step to local frame
        step = candidate.current_step / (1.0 + z)
        dE = Z * Z * rate * (1.0 + z) ** 2 * step
        current.energy = E - min(E, dE)

    def energy_loss_length(self, energy: float, mass_number: int, charge_number: int) -> float:
        """Return ``E / (dE/dx)`` in metres at zero redshift."""

        if charge_number < 1 or mass_number < 1:
            return math.inf
        rate = self.table.rate(energy / mass_number)
        if rate == 0.0:
            return math.inf
        return energy / (charge_number * charge_number * rate)
