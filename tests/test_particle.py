"""
Tests for particle states, serial numbers and candidates.
"""

import gc
import threading

import numpy as np
import pytest

from cosmic_mc.core.particle import (Candidate, ParticleState, SerialNumberCounter,
                                     charge_number, mass_number, nucleus_id,
                                     parse_species)


# =============================================================================
# ParticleState
# =============================================================================

class TestParticleState:
    """Tests for ParticleState."""

    def test_direction_is_normalized(self):
        state = ParticleState(energy=1.0, direction=(0.0, 3.0, 4.0))
        assert np.linalg.norm(state.direction) == pytest.approx(1.0)
        assert state.direction[2] == pytest.approx(0.8)

    def test_negative_energy_rejected(self):
        with pytest.raises(ValueError):
            ParticleState(energy=-1.0)
        state = ParticleState(energy=1.0)
        with pytest.raises(ValueError):
            state.set_energy(-0.5)

    def test_zero_direction_rejected(self):
        with pytest.raises(ValueError):
            ParticleState(direction=(0.0, 0.0, 0.0))

    def test_copy_is_independent(self):
        state = ParticleState(energy=5.0, position=(1.0, 2.0, 3.0))
        copy = state.copy()
        assert copy == state

        copy.position[0] = 10.0
        copy.set_energy(7.0)
        assert state.position[0] == 1.0
        assert state.energy == 5.0
        assert copy != state


class TestSpecies:
    """Tests for nucleus id helpers."""

    def test_proton_id(self):
        assert parse_species('proton') == 1000010010
        assert parse_species('H-1') == nucleus_id(1, 1)

    def test_iron_roundtrip(self):
        fe = parse_species('Fe-56')
        assert mass_number(fe) == 56
        assert charge_number(fe) == 26

    def test_integer_passthrough(self):
        assert parse_species(1000020040) == 1000020040

    def test_unknown_species(self):
        with pytest.raises(ValueError):
            parse_species('Xx-999')

    def test_invalid_nucleus(self):
        with pytest.raises(ValueError):
            nucleus_id(1, 2)


# =============================================================================
# SerialNumberCounter
# =============================================================================

class TestSerialNumberCounter:
    """Tests for serial number allocation."""

    def test_strictly_increasing(self, serials):
        numbers = [serials.next() for _ in range(10)]
        assert numbers == list(range(1, 11))
        assert serials.peek() == 11

    def test_reset(self, serials):
        serials.next()
        serials.reset(100)
        assert serials.next() == 100

    def test_unique_across_threads(self, serials):
        results = []

        def allocate():
            local = [serials.next() for _ in range(2000)]
            results.extend(local)

        threads = [threading.Thread(target=allocate) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 16000
        assert len(set(results)) == 16000


# =============================================================================
# Candidate
# =============================================================================

class TestCandidate:
    """Tests for Candidate lifecycle and ancestry."""

    def test_defaults(self, serials):
        c = Candidate(ParticleState(energy=3.0), serials=serials)
        assert c.weight == 1.0
        assert c.parent is None
        assert c.is_active()
        assert c.tag == 'PRIM'
        assert c.previous == c.current
        assert c.source == c.current
        assert c.secondaries == []

    def test_state_copied_on_construction(self, serials):
        state = ParticleState(energy=3.0)
        c = Candidate(state, serials=serials)
        state.set_energy(4.0)
        assert c.current.energy == 3.0

    def test_invalid_weight(self, serials):
        with pytest.raises(ValueError):
            Candidate(ParticleState(), weight=0.0, serials=serials)

    def test_update_weight(self, serials):
        c = Candidate(serials=serials)
        c.update_weight(0.25)
        assert c.weight == 0.25
        with pytest.raises(ValueError):
            c.update_weight(0.0)
        with pytest.raises(ValueError):
            c.update_weight(-2.0)

    def test_set_active(self, serials):
        c = Candidate(serials=serials)
        c.set_active(False)
        assert not c.is_active()
        assert not c.active

    def test_clone_copies_state_and_weight(self, serials):
        c = Candidate(ParticleState(energy=2.0), weight=0.5, serials=serials)
        c.current.set_energy(8.0)
        c.set_property('escaped', True)

        new = c.clone()
        assert new.serial_number != c.serial_number
        assert new.serial_number > c.serial_number
        assert new.parent is c
        assert new.weight == 0.5
        assert new.current.energy == 8.0
        assert new.previous.energy == 2.0
        assert new.source.energy == 2.0
        assert new.created.energy == 8.0
        assert new.get_property('escaped') is True
        assert new.secondaries == []

    def test_clone_is_independent(self, serials):
        c = Candidate(ParticleState(energy=2.0), serials=serials)
        new = c.clone()

        new.current.set_energy(50.0)
        new.current.position[1] = 9.0
        new.update_weight(0.5)
        new.set_property('tag', 'x')

        assert c.current.energy == 2.0
        assert c.current.position[1] == 0.0
        assert c.weight == 1.0
        assert not c.has_property('tag')

    def test_clone_does_not_copy_secondaries(self, serials):
        c = Candidate(serials=serials)
        c.add_secondary(c.clone())
        new = c.clone(recursive=False)
        assert new.secondaries == []
        assert len(c.secondaries) == 1

    def test_recursive_clone(self, serials):
        c = Candidate(serials=serials)
        child = c.clone()
        c.add_secondary(child)

        new = c.clone(recursive=True)
        assert len(new.secondaries) == 1
        copied = new.secondaries[0]
        assert copied is not child
        assert copied.parent is new
        assert copied.serial_number not in (c.serial_number, child.serial_number,
                                            new.serial_number)

    def test_add_secondary_sets_parent(self, serials):
        c = Candidate(serials=serials)
        orphan = Candidate(serials=serials)
        c.add_secondary(orphan)
        assert orphan.parent is c

    def test_pending_secondaries_drained_once(self, serials):
        c = Candidate(serials=serials)
        first = c.clone()
        c.add_secondary(first)
        assert c.pending_secondaries() == [first]
        assert c.pending_secondaries() == []

        second = c.clone()
        c.add_secondary(second)
        assert c.pending_secondaries() == [second]
        assert c.secondaries == [first, second]

    def test_parent_link_is_not_owning(self, serials):
        parent = Candidate(serials=serials)
        child = parent.clone()
        assert child.parent is parent

        del parent
        gc.collect()
        assert child.parent is None

    def test_ancestry(self, serials):
        primary = Candidate(serials=serials)
        child = primary.clone()
        grandchild = child.clone()
        assert list(grandchild.ancestry()) == [child, primary]
        assert list(primary.ancestry()) == []

    def test_properties(self, serials):
        c = Candidate(serials=serials)
        c.set_property('escaped')
        assert c.has_property('escaped')
        assert c.get_property('missing', 3) == 3
        c.remove_property('escaped')
        assert not c.has_property('escaped')
