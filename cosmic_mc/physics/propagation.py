"""
Rectilinear propagation.

Minimal stand-in for the field integrators: moves the candidate a fixed
step along its direction (c = 1 units, so time advances by the step).
"""

import numpy as np
import numba

from cosmic_mc.core.module import ConfigurationError, Module


@numba.njit(fastmath=True, cache=True)
def advance_position(position: np.ndarray, direction: np.ndarray,
                     step_length: float) -> np.ndarray:
    """Return position + step_length * direction."""
    new_position = np.empty(3)
    new_position[0] = position[0] + step_length * direction[0]
    new_position[1] = position[1] + step_length * direction[1]
    new_position[2] = position[2] + step_length * direction[2]
    return new_position


class SimplePropagation(Module):
    """Straight-line propagation with a fixed step length."""

    def __init__(self, step_length: float = 1.0):
        if step_length <= 0:
            raise ConfigurationError(f"SimplePropagation: step length must be > 0, got {step_length}")
        self.step_length = float(step_length)

    def process(self, candidate) -> None:
        state = candidate.current
        state.position = advance_position(state.position, state.direction,
                                          self.step_length)
        state.time += self.step_length
        candidate.trajectory_length += self.step_length

    def get_description(self) -> str:
        return f"SimplePropagation: step = {self.step_length:g}"
