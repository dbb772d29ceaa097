"""
Weighted spectrum estimation from observer records.

Split candidates carry weights < 1, so every histogram here is a sum of
weights, with the per-bin error sqrt(sum w^2).
"""

from typing import Optional, Tuple

import numpy as np


def log_energy_bins(e_min: float, e_max: float, n_bins: int) -> np.ndarray:
    """Logarithmic bin edges (n_bins + 1 values)."""
    return np.logspace(np.log10(e_min), np.log10(e_max), n_bins + 1)


def weighted_spectrum(energies: np.ndarray, weights: np.ndarray,
                      bins: np.ndarray, per_energy: bool = False) -> Tuple[np.ndarray, np.ndarray]:
    """
    Histogram energies with weights.

    Parameters:
        energies: Detected energies
        weights: Candidate weights
        bins: Bin edges
        per_energy: Divide by bin width (dN/dE instead of N per bin)

    Returns:
        (counts, errors) per bin
    """
    energies = np.asarray(energies, dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)
    counts, _ = np.histogram(energies, bins=bins, weights=weights)
    sum_w2, _ = np.histogram(energies, bins=bins, weights=weights ** 2)
    errors = np.sqrt(sum_w2)

    if per_energy:
        widths = np.diff(bins)
        counts = counts / widths
        errors = errors / widths

    return counts, errors


def integral_spectrum(energies: np.ndarray, weights: np.ndarray,
                      thresholds: np.ndarray) -> np.ndarray:
    """Weighted number of detections with E >= each threshold."""
    energies = np.asarray(energies, dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)
    return np.array([weights[energies >= e].sum() for e in thresholds])


def fit_power_law(energies: np.ndarray, weights: np.ndarray, bins: np.ndarray,
                  min_count: float = 0.0) -> Optional[float]:
    """
    Least-squares slope of log(dN/dE) vs log(E).

    Returns the differential spectral index s (dN/dE ~ E^-s), or None if
    fewer than two bins are populated.
    """
    counts, _ = weighted_spectrum(energies, weights, bins, per_energy=True)
    centers = np.sqrt(bins[:-1] * bins[1:])
    mask = counts > min_count
    if np.sum(mask) < 2:
        return None
    slope, _ = np.polyfit(np.log(centers[mask]), np.log(counts[mask]), 1)
    return float(-slope)


def total_weight(records: np.ndarray) -> float:
    """Summed weight of observer records (represented particle count)."""
    if len(records) == 0:
        return 0.0
    return float(np.sum(records['weight']))


def relative_error(weights: np.ndarray) -> float:
    """Relative error of a weighted sum, sqrt(sum w^2) / sum w."""
    weights = np.asarray(weights, dtype=np.float64)
    total = weights.sum()
    if total <= 0:
        return 0.0
    return float(np.sqrt(np.sum(weights ** 2)) / total)


def figure_of_merit(rel_error: float, wall_time: float) -> float:
    """FOM = 1 / (R^2 * T). Higher is better."""
    if rel_error <= 0.0 or wall_time <= 0.0:
        return 0.0
    return 1.0 / (rel_error * rel_error * wall_time)
