"""
COSMIC_MC: Cosmic-ray candidate propagation with importance splitting

A Monte Carlo engine advancing weighted cosmic-ray candidates through an
ordered chain of modules, with energy-threshold candidate splitting for
variance reduction.

Modules:
    core: Particle state, candidates, module contract, sources
    physics: Splitting, propagation, acceleration, cutoffs
    scoring: Observers and weighted spectra
    transport: ModuleList scheduler (serial and threaded)
    config: YAML simulation setup
"""

__version__ = "0.1.0"

from cosmic_mc.core.particle import (Candidate, ParticleState,
                                     SerialNumberCounter, nucleus_id)
from cosmic_mc.core.module import ConfigurationError, Module
from cosmic_mc.core.source import MonoenergeticSource, PowerLawSource, Source
from cosmic_mc.physics.splitting import CandidateSplitting
from cosmic_mc.scoring.observer import Observer
from cosmic_mc.transport.module_list import ModuleList

__all__ = [
    "Candidate",
    "ParticleState",
    "SerialNumberCounter",
    "nucleus_id",
    "ConfigurationError",
    "Module",
    "Source",
    "MonoenergeticSource",
    "PowerLawSource",
    "CandidateSplitting",
    "Observer",
    "ModuleList",
]
