"""
Shock Acceleration Spectrum - Splitting vs Analog

Accelerates protons in a toy first-order Fermi process and compares the
escaped spectrum of an analog run with a run using candidate splitting
matched to the expected spectral index.

Expected results for gain = 0.1, p_esc = 0.2:
    - Differential index s = 1 - ln(0.8)/ln(1.1) ~ 3.34
    - Splitting run populates the high-energy decades far better
    - Both runs agree within errors where the analog run has statistics
"""

import time
from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt

from cosmic_mc.core.source import MonoenergeticSource
from cosmic_mc.physics.acceleration import ShockAcceleration, expected_spectral_index
from cosmic_mc.physics.boundaries import MaximumTrajectoryLength
from cosmic_mc.physics.splitting import CandidateSplitting
from cosmic_mc.scoring.observer import Observer, PropertyFlag
from cosmic_mc.scoring.spectrum import (fit_power_law, log_energy_bins,
                                        relative_error, weighted_spectrum)
from cosmic_mc.transport.module_list import ModuleList


def simulate_shock(n_primaries: int = 5000, energy_gain: float = 0.1,
                   escape_probability: float = 0.2, splitting: bool = True,
                   n_workers: int = None, seed: int = 42):
    """
    Run the toy shock with or without splitting.

    Parameters:
        n_primaries: Number of injected protons
        energy_gain: Fractional gain per cycle
        escape_probability: Escape probability per cycle
        splitting: Add a CandidateSplitting module
        n_workers: Worker threads (default: cpu_count)
        seed: Random seed

    Returns:
        energies, weights, stats, elapsed
    """
    s = expected_spectral_index(energy_gain, escape_probability)

    print(f"\n{'='*70}")
    print(f"Shock Acceleration ({'splitting' if splitting else 'analog'})")
    print(f"{'='*70}")
    print(f"  Primaries: {n_primaries:,}")
    print(f"  Gain: {energy_gain}, escape probability: {escape_probability}")
    print(f"  Expected spectral index: {s:.2f}")
    print(f"{'='*70}\n")

    observer = Observer(PropertyFlag('escaped'))

    modules = ModuleList()
    modules.add(ShockAcceleration(energy_gain, escape_probability, seed=seed))
    if splitting:
        modules.add(CandidateSplitting.from_spectral_index(s, e_min=2.0, factor=4,
                                                           min_weight=1e-8))
    modules.add(observer)
    modules.add(MaximumTrajectoryLength(500))
    modules.show_modules()

    source = MonoenergeticSource('proton', 1.0, seed=seed)

    start = time.time()
    stats = modules.run(source, n_primaries, n_workers=n_workers,
                        show_progress=True, verbose=True)
    elapsed = time.time() - start

    records = observer.to_array()
    return records['energy'], records['weight'], stats, elapsed


def plot_spectra(results: dict, bins: np.ndarray, expected_index: float,
                 save_path=None):
    """Plot dN/dE of each run with error bars."""
    plt.figure(figsize=(10, 6))
    centers = np.sqrt(bins[:-1] * bins[1:])

    for label, (energies, weights) in results.items():
        counts, errors = weighted_spectrum(energies, weights, bins, per_energy=True)
        mask = counts > 0
        plt.errorbar(centers[mask], counts[mask], yerr=errors[mask],
                     fmt='o', capsize=3, label=label)

    # Reference power law scaled into the plotted range
    ref = centers ** (-expected_index)
    plt.plot(centers, ref / ref[0] * plt.ylim()[1] * 0.5, 'k--', alpha=0.5,
             label=f'$E^{{-{expected_index:.2f}}}$')

    plt.xscale('log')
    plt.yscale('log')
    plt.xlabel('Energy [E$_0$]', fontsize=14, fontweight='bold')
    plt.ylabel('dN/dE', fontsize=14, fontweight='bold')
    plt.title('Escaped Spectrum: Analog vs Candidate Splitting',
              fontsize=16, fontweight='bold')
    plt.grid(True, alpha=0.3, linestyle='--')
    plt.legend(fontsize=12)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Figure saved: {save_path}")

    return plt.gcf()


# ============================================================================
# Main Execution
# ============================================================================

if __name__ == "__main__":
    gain, p_esc = 0.1, 0.2
    s = expected_spectral_index(gain, p_esc)
    bins = log_energy_bins(1.0, 1e5, 25)

    results = {}
    for splitting in (False, True):
        energies, weights, stats, elapsed = simulate_shock(
            n_primaries=5000, energy_gain=gain, escape_probability=p_esc,
            splitting=splitting
        )
        label = 'Splitting' if splitting else 'Analog'
        results[label] = (energies, weights)

        fitted = fit_power_law(energies, weights, bins)
        high = energies > 1e3
        print(f"\n{label}:")
        print(f"  Detected: {len(energies):,} (total weight {weights.sum():.1f})")
        print(f"  Fitted index: {fitted if fitted is None else round(fitted, 2)} "
              f"(expected {s:.2f})")
        print(f"  Relative error above 1e3: {relative_error(weights[high]):.3f}")
        print(f"  Time: {elapsed:.2f}s")

    plot_spectra(results, bins, s,
                 save_path=Path(__file__).parent / 'shock_spectrum.png')
    plt.show()

    print("\n" + "="*70)
    print("Example complete!")
    print("="*70 + "\n")
