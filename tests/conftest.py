"""Shared fixtures for the cosmic_mc test suite."""

import pytest

from cosmic_mc.core.particle import (Candidate, ParticleState,
                                     SerialNumberCounter, parse_species)
from cosmic_mc.physics.splitting import CandidateSplitting


@pytest.fixture
def serials():
    """Fresh serial number counter."""
    return SerialNumberCounter()


@pytest.fixture
def make_candidate(serials):
    """Factory: candidate with given previous and current energy."""
    def _make(prev_energy, curr_energy, weight=1.0):
        state = ParticleState(parse_species('proton'), prev_energy)
        candidate = Candidate(state, weight=weight, serials=serials)
        candidate.current.set_energy(curr_energy)
        return candidate
    return _make


@pytest.fixture
def splitting():
    """Thresholds [1, 10, 100], two copies per crossing."""
    module = CandidateSplitting(n_split=2)
    module.set_energy_bins_array([1.0, 10.0, 100.0])
    return module
