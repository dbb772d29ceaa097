"""Physics module: Candidate splitting, propagation, acceleration, cutoffs."""

from cosmic_mc.physics.splitting import CandidateSplitting
from cosmic_mc.physics.propagation import SimplePropagation
from cosmic_mc.physics.acceleration import ShockAcceleration
from cosmic_mc.physics.boundaries import MinimumEnergy, MaximumTrajectoryLength

__all__ = [
    "CandidateSplitting",
    "SimplePropagation",
    "ShockAcceleration",
    "MinimumEnergy",
    "MaximumTrajectoryLength",
]
