"""Core module: Particle state, candidates, module contract and sources."""

from cosmic_mc.core.particle import Candidate, ParticleState, SerialNumberCounter
from cosmic_mc.core.module import ConfigurationError, Module, RandomModule
from cosmic_mc.core.source import MonoenergeticSource, PowerLawSource, Source

__all__ = [
    "Candidate",
    "ParticleState",
    "SerialNumberCounter",
    "ConfigurationError",
    "Module",
    "RandomModule",
    "Source",
    "MonoenergeticSource",
    "PowerLawSource",
]
