"""Configuration loading and builders for fields and modules."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from . import constants
from .errors import ConfigurationError
from .io import tables
from .module import Module
from .physics.diffusion_sde import DiffusionSDE
from .physics.energy_loss import ElectronPairProduction
from .physics.fields import GridMagneticField, MagneticField, TurbulentMagneticField, UniformMagneticField
from .schema import Config, FieldConfig

logger = logging.getLogger(__name__)

__all__ = [
    "parse_override_value",
    "apply_overrides_dict",
    "load_config",
    "build_field",
    "build_modules",
]


def parse_override_value(raw: str) -> Any:
    """Parse an override value into a Python object."""

    text = raw.strip()
    lower = text.lower()
    if lower in {"true", "false"}:
        return lower == "true"
    if lower in {"none", "null"}:
        return None
    try:
        return int(text)
    except ValueError:
        try:
            return float(text)
        except ValueError:
            pass
    if text.startswith("[") and text.endswith("]"):
        inner = text[1:-1].strip()
        return [parse_override_value(part) for part in inner.split(",")] if inner else []
    if (text.startswith('"') and text.endswith('"')) or (text.startswith("'") and text.endswith("'")):
        return text[1:-1]
    return text


def apply_overrides_dict(payload: Dict[str, Any], overrides: Sequence[str]) -> Dict[str, Any]:
    """Apply dotted-path overrides such as ``diffusion.epsilon=0.2``."""

    if not overrides:
        return payload
    for item in overrides:
        key, sep, value_str = item.partition("=")
        if not sep:
            raise ConfigurationError(f"Invalid override '{item}'; expected path=value")
        parts = [segment for segment in key.strip().split(".") if segment]
        if not parts:
            raise ConfigurationError(f"Invalid override '{item}'; empty path")
        target: Any = payload
        for segment in parts[:-1]:
            if not isinstance(target, dict):
                raise ConfigurationError(f"Cannot traverse into non-mapping for override '{item}' at '{segment}'")
            if target.get(segment) is None:
                target[segment] = {}
            target = target[segment]
        if not isinstance(target, dict):
            raise ConfigurationError(f"Cannot set override '{item}'; target is not a mapping")
        target[parts[-1]] = parse_override_value(value_str)
    return payload


def load_config(path: Path, overrides: Optional[Sequence[str]] = None) -> Config:
    """Load a YAML configuration file into a :class:`Config` instance."""

    from ruamel.yaml import YAML

    yaml = YAML(typ="safe")
    source_path = Path(path).resolve()
    with source_path.open("r", encoding="utf-8") as fh:
        data = yaml.load(fh)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root in {source_path} must be a mapping")
    data = apply_overrides_dict(data, overrides or [])
    cfg = Config(**data)
    logger.debug("load_config: loaded %s", source_path)
    return cfg


def build_field(field_cfg: FieldConfig) -> MagneticField:
    """Instantiate the magnetic field described by ``field_cfg``."""

    regular = None
    if field_cfg.b_muG is not None:
        regular = [b * constants.MICROGAUSS for b in field_cfg.b_muG]
    if field_cfg.kind == "uniform":
        return UniformMagneticField(regular)
    if field_cfg.kind == "turbulent":
        return TurbulentMagneticField(
            b_rms=field_cfg.b_rms_muG * constants.MICROGAUSS,
            l_min=field_cfg.l_min_pc * constants.PARSEC,
            l_max=field_cfg.l_max_pc * constants.PARSEC,
            n_modes=field_cfg.n_modes,
            spectral_index=field_cfg.spectral_index,
            mean_field=regular,
            seed=field_cfg.seed,
        )
    frame = tables.load_field_grid_frame(field_cfg.grid_path)
    return GridMagneticField.from_frame(frame, periodic=field_cfg.periodic)


def build_modules(cfg: Config, field: Optional[MagneticField] = None) -> List[Module]:
    """Return the configured modules in processing order."""

    if field is None:
        field = build_field(cfg.field)
    modules: List[Module] = [DiffusionSDE.from_config(cfg.diffusion, field)]
    if cfg.energy_loss.enabled:
        modules.append(
            ElectronPairProduction(cfg.energy_loss.photon_field, data_path=cfg.energy_loss.data_path)
        )
    for module in modules:
        logger.info("Configured %s", module.description)
    return modules
