"""
YAML simulation configuration.

Example document:

    simulation:
      n_primaries: 1000
      n_workers: 4
      recursive: true
    source:
      type: MonoenergeticSource
      species: proton
      energy: 1.0
    modules:
      - type: ShockAcceleration
        energy_gain: 0.1
        escape_probability: 0.1
        seed: 42
      - type: CandidateSplitting
        spectral_index: 2.0
        e_min: 1.0
        factor: 4
      - type: Observer
        features:
          - {type: PropertyFlag, name: escaped}
      - type: MaximumTrajectoryLength
        max_length: 1000

All construction happens before the run starts, so invalid settings
(unknown types, bad energy bins, ...) raise ConfigurationError and the
run never begins.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from cosmic_mc.core.module import ConfigurationError, Module
from cosmic_mc.core.source import MonoenergeticSource, PowerLawSource, Source
from cosmic_mc.physics.acceleration import ShockAcceleration
from cosmic_mc.physics.boundaries import MaximumTrajectoryLength, MinimumEnergy
from cosmic_mc.physics.propagation import SimplePropagation
from cosmic_mc.physics.splitting import CandidateSplitting
from cosmic_mc.scoring.observer import (DetectAll, EnergyAbove, Observer,
                                        PropertyFlag, SphereSurface)
from cosmic_mc.transport.module_list import ModuleList


SOURCES = {
    'MonoenergeticSource': MonoenergeticSource,
    'PowerLawSource': PowerLawSource,
}

FEATURES = {
    'DetectAll': DetectAll,
    'EnergyAbove': EnergyAbove,
    'SphereSurface': SphereSurface,
    'PropertyFlag': PropertyFlag,
}

SIMULATION_DEFAULTS = {
    'n_primaries': 100,
    'n_workers': None,
    'recursive': True,
}


def load_config(path: Union[str, Path]) -> dict:
    """Read a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        config = yaml.safe_load(f)

    if not isinstance(config, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")
    return config


def _pop_type(entry: dict, kind: str) -> Tuple[str, dict]:
    if not isinstance(entry, dict) or 'type' not in entry:
        raise ConfigurationError(f"Each {kind} entry needs a 'type' key, got {entry!r}")
    params = dict(entry)
    return params.pop('type'), params


def _build_splitting(**params) -> CandidateSplitting:
    if 'spectral_index' in params:
        return CandidateSplitting.from_spectral_index(**params)
    bins = params.pop('energy_bins', None)
    module = CandidateSplitting(**params)
    if bins is not None:
        module.set_energy_bins_array(bins)
    return module


def _build_observer(**params) -> Observer:
    features = []
    for entry in params.pop('features', []):
        name, feature_params = _pop_type(entry, 'feature')
        if name not in FEATURES:
            raise ConfigurationError(f"Unknown observer feature '{name}'. "
                                     f"Available: {list(FEATURES.keys())}")
        features.append(FEATURES[name](**feature_params))
    return Observer(*features, **params)


MODULES = {
    'CandidateSplitting': _build_splitting,
    'SimplePropagation': SimplePropagation,
    'ShockAcceleration': ShockAcceleration,
    'MinimumEnergy': MinimumEnergy,
    'MaximumTrajectoryLength': MaximumTrajectoryLength,
    'Observer': _build_observer,
}


def build_module(entry: dict) -> Module:
    name, params = _pop_type(entry, 'module')
    if name not in MODULES:
        raise ConfigurationError(f"Unknown module '{name}'. "
                                 f"Available: {list(MODULES.keys())}")
    try:
        return MODULES[name](**params)
    except TypeError as e:
        raise ConfigurationError(f"{name}: {e}") from e


def build_module_list(config: dict) -> ModuleList:
    entries = config.get('modules') or []
    if not entries:
        raise ConfigurationError("Configuration has no modules")
    return ModuleList(build_module(entry) for entry in entries)


def build_source(config: dict) -> Source:
    if 'source' not in config:
        raise ConfigurationError("Configuration has no source")
    name, params = _pop_type(config['source'], 'source')
    if name not in SOURCES:
        raise ConfigurationError(f"Unknown source '{name}'. "
                                 f"Available: {list(SOURCES.keys())}")
    try:
        return SOURCES[name](**params)
    except TypeError as e:
        raise ConfigurationError(f"{name}: {e}") from e


def simulation_settings(config: dict) -> dict:
    settings = dict(SIMULATION_DEFAULTS)
    settings.update(config.get('simulation') or {})
    unknown = set(settings) - set(SIMULATION_DEFAULTS)
    if unknown:
        raise ConfigurationError(f"Unknown simulation settings: {sorted(unknown)}")
    return settings


def run_from_config(path: Union[str, Path], show_progress: bool = False,
                    verbose: bool = False,
                    n_primaries: Optional[int] = None) -> Tuple[ModuleList, dict]:
    """
    Build everything from a YAML file and run it.

    Returns:
        (module_list, statistics); observers are reachable through the list
    """
    config = load_config(path)
    modules = build_module_list(config)
    source = build_source(config)
    settings = simulation_settings(config)

    if verbose:
        modules.show_modules()

    count = settings['n_primaries'] if n_primaries is None else n_primaries
    stats = modules.run(source, count,
                        recursive=settings['recursive'],
                        n_workers=settings['n_workers'],
                        show_progress=show_progress,
                        verbose=verbose)
    return modules, stats
