"""
Toy first-order Fermi acceleration at a shock.

Each step (one shock crossing cycle) multiplies the energy by
(1 + energy_gain); afterwards the candidate escapes downstream with
probability escape_probability. The integral spectrum of escaped
particles is then a power law N(>E) ~ E^-(s - 1) with

    s = 1 - ln(1 - p_esc) / ln(1 + gain)

so roughly 10^(s - 1) particles are lost per decade, which is what
CandidateSplitting.from_spectral_index compensates.
"""

from typing import Optional

import numpy as np

from cosmic_mc.core.module import ConfigurationError, RandomModule

ESCAPED = 'escaped'


def expected_spectral_index(energy_gain: float, escape_probability: float) -> float:
    """Differential spectral index s of escaped particles, dN/dE ~ E^-s."""
    return 1.0 - np.log(1.0 - escape_probability) / np.log(1.0 + energy_gain)


class ShockAcceleration(RandomModule):
    """
    Stochastic energy gain with escape.

    Escaped candidates are flagged with the 'escaped' property and left
    active; an Observer with a PropertyFlag('escaped') feature collects them.
    """

    def __init__(self, energy_gain: float = 0.1, escape_probability: float = 0.1,
                 step_length: float = 1.0, seed: Optional[int] = None):
        """
        Parameters:
            energy_gain: Fractional energy gain per cycle (> 0)
            escape_probability: Escape probability per cycle, in (0, 1)
            step_length: Trajectory length added per cycle
            seed: Random seed (one stream per worker thread)
        """
        super().__init__(seed)
        if energy_gain <= 0:
            raise ConfigurationError(f"ShockAcceleration: energy gain must be > 0, got {energy_gain}")
        if not 0.0 < escape_probability < 1.0:
            raise ConfigurationError(
                f"ShockAcceleration: escape probability must be in (0, 1), got {escape_probability}")
        self.energy_gain = float(energy_gain)
        self.escape_probability = float(escape_probability)
        self.step_length = float(step_length)

    def process(self, candidate) -> None:
        if candidate.has_property(ESCAPED):
            return

        state = candidate.current
        state.set_energy(state.energy * (1.0 + self.energy_gain))
        state.time += self.step_length
        candidate.trajectory_length += self.step_length

        if self.rng.random() < self.escape_probability:
            candidate.set_property(ESCAPED, True)

    def get_description(self) -> str:
        return (f"ShockAcceleration: gain = {self.energy_gain:g}, "
                f"p_esc = {self.escape_probability:g}")
