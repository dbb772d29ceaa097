"""Per-candidate cutoffs. Failing candidates are deactivated, never raised on."""

from cosmic_mc.core.module import ConfigurationError, Module


class MinimumEnergy(Module):
    """Deactivate candidates whose energy dropped below e_min."""

    def __init__(self, e_min: float):
        if e_min < 0:
            raise ConfigurationError(f"MinimumEnergy: e_min must be >= 0, got {e_min}")
        self.e_min = float(e_min)

    def process(self, candidate) -> None:
        if candidate.current.energy < self.e_min:
            candidate.set_active(False)

    def get_description(self) -> str:
        return f"MinimumEnergy: {self.e_min:g}"


class MaximumTrajectoryLength(Module):
    """Deactivate candidates that travelled further than max_length."""

    def __init__(self, max_length: float):
        if max_length <= 0:
            raise ConfigurationError(
                f"MaximumTrajectoryLength: max length must be > 0, got {max_length}")
        self.max_length = float(max_length)

    def process(self, candidate) -> None:
        if candidate.trajectory_length >= self.max_length:
            candidate.set_active(False)

    def get_description(self) -> str:
        return f"MaximumTrajectoryLength: {self.max_length:g}"
