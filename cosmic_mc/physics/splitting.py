"""
Energy-threshold candidate splitting (importance splitting).

Candidates are split into n copies when they cross configured energy
thresholds between two steps. Each crossing divides the weight of the
original by n_split and adds n_split - 1 copies of equal weight, so the
summed weight of the tree is unchanged.

For diffusive shock acceleration the splitting number can be matched to
the expected spectral index, compensating the loss of particles per decade
in energy.
"""

from typing import Sequence, Tuple

import numpy as np
import numba

from cosmic_mc.core.module import ConfigurationError, Module


@numba.njit(cache=True)
def find_crossings(energy_bins: np.ndarray, prev_energy: float,
                   curr_energy: float) -> Tuple[int, int]:
    """
    Locate the bin occupied before the step and count crossed thresholds.

    Scans from the lowest threshold for the first one above prev_energy.
    Comparisons are strict, so an energy equal to a threshold counts as
    above it.

    Parameters:
        energy_bins: Strictly increasing thresholds
        prev_energy: Energy at the end of the previous step
        curr_energy: Energy after the current step

    Returns:
        (first, n_crossings): index of the first threshold above
            prev_energy (-1 if none) and the number of thresholds from
            there on that curr_energy reached
    """
    n = len(energy_bins)
    if n == 0 or curr_energy < energy_bins[0]:
        return -1, 0

    for i in range(n):
        if prev_energy < energy_bins[i]:
            if curr_energy < energy_bins[i]:
                # previous and current in the same bin
                return i, 0
            n_crossings = 0
            for j in range(i, n):
                n_crossings += 1
                if j < n - 1 and curr_energy < energy_bins[j + 1]:
                    break
            return i, n_crossings

    return -1, 0


def energy_bins(e_min: float, e_max: float, n_bins: int, log: bool = False) -> np.ndarray:
    """
    Build a threshold table.

    Linear: e_min + i * (e_max - e_min) / n_bins for i < n_bins
    Log:    e_min * (e_max / e_min)^(i / (n_bins - 1))
    """
    if e_min > e_max:
        raise ConfigurationError(
            f"CandidateSplitting: Emin > Emax! ({e_min} > {e_max})")
    n_bins = int(n_bins)
    if n_bins < 1:
        raise ConfigurationError(
            f"CandidateSplitting: need at least one energy bin, got {n_bins}")

    i = np.arange(n_bins, dtype=np.float64)
    if log:
        if e_min <= 0:
            raise ConfigurationError(
                "CandidateSplitting: logarithmic bins need Emin > 0")
        if n_bins == 1:
            return np.array([float(e_min)])
        bins = e_min * (e_max / e_min) ** (i / (n_bins - 1.0))
    else:
        bins = e_min + i * (e_max - e_min) / n_bins

    if np.any(np.diff(bins) <= 0):
        raise ConfigurationError(
            f"CandidateSplitting: {n_bins} bins between {e_min} and {e_max} "
            "are not strictly increasing")
    return bins


class CandidateSplitting(Module):
    """
    Split candidates into n_split copies at each energy-threshold crossing.

    Example:
        splitting = CandidateSplitting(n_split=2, e_min=1.0, e_max=1e4,
                                       n_bins=5, log=True)
        modules.add(splitting)
    """

    def __init__(self, n_split: int = 0, e_min: float = None, e_max: float = None,
                 n_bins: int = None, min_weight: float = 0.0, log: bool = False):
        """
        Initialize splitting module. Without arguments, splitting is off.

        Parameters:
            n_split: Number of copies a candidate is split into per crossing
            e_min: Minimal energy for splitting (first threshold)
            e_max: Maximal energy for splitting
            n_bins: Number of energy thresholds
            min_weight: No split is done that would push a weight below this
            log: Logarithmic instead of linear threshold spacing
        """
        self.n_split = 0
        self.min_weight = 0.0
        self._energy_bins = np.zeros(0)

        self.set_n_split(n_split)
        self.set_minimal_weight(min_weight)
        if e_min is not None:
            if e_max is None or n_bins is None:
                raise ConfigurationError(
                    "CandidateSplitting: e_min, e_max and n_bins go together")
            self.set_energy_bins(e_min, e_max, n_bins, log)

    @classmethod
    def from_spectral_index(cls, spectral_index: float, e_min: float,
                            factor: int, min_weight: float = 0.0) -> 'CandidateSplitting':
        """
        Configure splitting for an expected power law (diffusive shock acceleration).

        Parameters:
            spectral_index: Absolute value of the expected spectral index
            e_min: Minimal energy for splitting
            factor: Number of decades; Emax = Emin * 10^factor, n_bins = factor + 1

        Note:
            n_split = int(10^(spectral_index - 1)), so any index below 1
            gives n_split = 0 and the module is disabled.
        """
        if spectral_index <= 0:
            raise ConfigurationError(
                f"CandidateSplitting: spectralIndex <= 0 ! ({spectral_index})")

        e_max = e_min * 10.0 ** factor
        module = cls(min_weight=min_weight)
        module.set_energy_bins(e_min, e_max, int(factor) + 1, log=True)
        # compensates the expected loss of particles per decade
        module.set_n_split(int(10.0 ** (spectral_index - 1)))
        return module

    def process(self, candidate) -> None:
        curr_e = candidate.current.energy
        prev_e = candidate.previous.energy

        if self.n_split == 0 or len(self._energy_bins) == 0:
            return
        if curr_e < self._energy_bins[0]:
            return

        _, n_crossings = find_crossings(self._energy_bins, prev_e, curr_e)

        for _ in range(n_crossings):
            if candidate.weight / self.n_split < self.min_weight:
                return

            candidate.update_weight(1.0 / self.n_split)

            for _ in range(1, self.n_split):
                new_candidate = candidate.clone(recursive=False)
                # otherwise the copy reads as a fresh crossing next step
                new_candidate.previous.set_energy(curr_e)
                candidate.add_secondary(new_candidate)

    def set_energy_bins(self, e_min: float, e_max: float, n_bins: int, log: bool = False):
        self._energy_bins = energy_bins(e_min, e_max, n_bins, log)

    def set_energy_bins_array(self, bins: Sequence[float]):
        """Use an explicit, strictly increasing list of thresholds."""
        bins = np.asarray(bins, dtype=np.float64)
        if bins.ndim != 1 or len(bins) == 0:
            raise ConfigurationError("CandidateSplitting: need a 1D list of thresholds")
        if np.any(np.diff(bins) <= 0):
            raise ConfigurationError(
                "CandidateSplitting: energy thresholds must be strictly increasing")
        self._energy_bins = bins.copy()

    def get_energy_bins(self) -> np.ndarray:
        return self._energy_bins.copy()

    def set_n_split(self, n: int):
        if n < 0:
            raise ConfigurationError(f"CandidateSplitting: n_split < 0 ({n})")
        self.n_split = int(n)

    def get_n_split(self) -> int:
        return self.n_split

    def set_minimal_weight(self, w: float):
        if w < 0:
            raise ConfigurationError(f"CandidateSplitting: minimal weight < 0 ({w})")
        self.min_weight = float(w)

    def get_minimal_weight(self) -> float:
        return self.min_weight

    def get_description(self) -> str:
        bins = self._energy_bins
        if self.n_split == 0 or len(bins) == 0:
            return "CandidateSplitting: disabled"
        return (f"CandidateSplitting: n_split={self.n_split}, {len(bins)} thresholds "
                f"[{bins[0]:.4g} .. {bins[-1]:.4g}], min_weight={self.min_weight:.3g}")
