"""
Primary candidate sources.

A source hands out one fresh primary Candidate per call, using the serial
number counter of the run that requested it.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple, Union

import numpy as np

from cosmic_mc.core.module import ConfigurationError
from cosmic_mc.core.particle import (Candidate, ParticleState,
                                     SerialNumberCounter, parse_species)


def sample_isotropic_direction(rng: np.random.Generator) -> np.ndarray:
    """Return a random unit vector sampled uniformly on the unit sphere."""
    mu = 2.0 * rng.random() - 1.0
    phi = 2.0 * np.pi * rng.random()
    sin_theta = np.sqrt(max(1.0 - mu * mu, 0.0))
    return np.array([sin_theta * np.cos(phi), sin_theta * np.sin(phi), mu])


class Source(ABC):
    """Generator of primary candidates (parent None, weight 1)."""

    @abstractmethod
    def get_state(self) -> ParticleState:
        pass

    def get_candidate(self, serials: Optional[SerialNumberCounter] = None) -> Candidate:
        return Candidate(self.get_state(), weight=1.0, serials=serials, tag='PRIM')


class MonoenergeticSource(Source):
    """Point source with a fixed direction and optional Gaussian energy spread."""

    def __init__(self, species: Union[str, int], energy: float,
                 position: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                 direction: Tuple[float, float, float] = (1.0, 0.0, 0.0),
                 energy_spread: float = 0.0,
                 seed: Optional[int] = None):
        """
        Parameters:
            species: Species name ('proton', 'Fe-56', ...) or nucleus id
            energy: Mean energy
            position: (x, y, z) emission point
            direction: (dx, dy, dz) emission direction (normalized internally)
            energy_spread: Energy spread (sigma)
            seed: Random seed for the energy spread
        """
        if energy < 0 or energy_spread < 0:
            raise ConfigurationError("Source energy and spread must be >= 0")
        self.species = parse_species(species)
        self.energy = float(energy)
        self.position = tuple(position)
        self.direction = tuple(direction)
        self.energy_spread = float(energy_spread)
        self.rng = np.random.default_rng(seed)

    def get_state(self) -> ParticleState:
        energy = self.energy
        if self.energy_spread > 0:
            energy = max(self.rng.normal(self.energy, self.energy_spread), 0.0)
        return ParticleState(self.species, energy, self.position, self.direction)


class PowerLawSource(Source):
    """
    Source with a dN/dE ~ E^index spectrum between e_min and e_max.

    Directions are isotropic unless a fixed direction is given.
    """

    def __init__(self, species: Union[str, int], e_min: float, e_max: float,
                 index: float = -2.0,
                 position: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                 direction: Optional[Tuple[float, float, float]] = None,
                 seed: Optional[int] = None):
        if e_min <= 0 or e_min > e_max:
            raise ConfigurationError(
                f"PowerLawSource: need 0 < e_min <= e_max, got {e_min}, {e_max}")
        self.species = parse_species(species)
        self.e_min = float(e_min)
        self.e_max = float(e_max)
        self.index = float(index)
        self.position = tuple(position)
        self.direction = None if direction is None else tuple(direction)
        self.rng = np.random.default_rng(seed)

    def sample_energy(self) -> float:
        u = self.rng.random()
        if abs(self.index + 1.0) < 1e-12:
            return self.e_min * (self.e_max / self.e_min) ** u
        g = self.index + 1.0
        lo = self.e_min ** g
        hi = self.e_max ** g
        return float((lo + u * (hi - lo)) ** (1.0 / g))

    def get_state(self) -> ParticleState:
        if self.direction is None:
            direction = sample_isotropic_direction(self.rng)
        else:
            direction = self.direction
        return ParticleState(self.species, self.sample_energy(),
                             self.position, direction)
