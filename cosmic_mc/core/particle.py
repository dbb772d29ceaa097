"""
Candidate state management.

A ParticleState is a snapshot of a transported cosmic ray (position,
direction, energy, species, time). A Candidate carries the current and
previous state of one Monte Carlo sample path together with its
statistical weight and its place in the splitting tree.
"""

import threading
import weakref
from typing import Iterator, List, Optional, Tuple

import numpy as np


# Nucleus id convention: 10LZZZAAAI with L = I = 0
NUCLEUS_ID_OFFSET = 1000000000

SPECIES = {
    'proton': (1, 1),
    'H-1': (1, 1),
    'deuteron': (2, 1),
    'H-2': (2, 1),
    'He-3': (3, 2),
    'He-4': (4, 2),
    'alpha': (4, 2),
    'Li-7': (7, 3),
    'Be-9': (9, 4),
    'B-11': (11, 5),
    'C-12': (12, 6),
    'N-14': (14, 7),
    'O-16': (16, 8),
    'Ne-20': (20, 10),
    'Mg-24': (24, 12),
    'Si-28': (28, 14),
    'Fe-56': (56, 26),
}


def nucleus_id(A: int, Z: int) -> int:
    """Encode mass number A and charge number Z as a nucleus id."""
    if A < 0 or Z < 0 or Z > A:
        raise ValueError(f"Invalid nucleus A={A}, Z={Z}")
    return NUCLEUS_ID_OFFSET + Z * 10000 + A * 10


def mass_number(species: int) -> int:
    return (species // 10) % 1000


def charge_number(species: int) -> int:
    return (species // 10000) % 1000


def parse_species(name: str) -> int:
    """Parse 'Fe-56' → nucleus id. Integers pass through unchanged."""
    if isinstance(name, (int, np.integer)):
        return int(name)
    if name not in SPECIES:
        raise ValueError(f"Unknown species '{name}'. "
                         f"Available: {list(SPECIES.keys())}")
    A, Z = SPECIES[name]
    return nucleus_id(A, Z)


class ParticleState:
    """Snapshot of a particle at one point of its trajectory."""

    __slots__ = ("position", "direction", "energy", "species", "time")

    def __init__(self, species: int = NUCLEUS_ID_OFFSET + 10010,
                 energy: float = 0.0,
                 position: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                 direction: Tuple[float, float, float] = (1.0, 0.0, 0.0),
                 time: float = 0.0):
        """
        Parameters:
            species: Nucleus id (see nucleus_id)
            energy: Total energy [arbitrary units, >= 0]
            position: (x, y, z) position
            direction: (dx, dy, dz) direction (normalized internally)
            time: Time or redshift marker
        """
        self.species = int(species)
        self.energy = 0.0
        self.set_energy(energy)
        self.position = np.array(position, dtype=np.float64)
        self.direction = np.array([1.0, 0.0, 0.0])
        self.set_direction(direction)
        self.time = float(time)

    def set_energy(self, energy: float):
        if energy < 0:
            raise ValueError(f"Energy must be >= 0, got {energy}")
        self.energy = float(energy)

    def set_position(self, position):
        self.position = np.array(position, dtype=np.float64)

    def set_direction(self, direction):
        dir_array = np.array(direction, dtype=np.float64)
        norm = np.linalg.norm(dir_array)
        if norm == 0:
            raise ValueError("Direction vector must be non-zero")
        self.direction = dir_array / norm

    def copy(self) -> 'ParticleState':
        state = ParticleState.__new__(ParticleState)
        state.species = self.species
        state.energy = self.energy
        state.position = self.position.copy()
        state.direction = self.direction.copy()
        state.time = self.time
        return state

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParticleState):
            return NotImplemented
        return (self.species == other.species
                and self.energy == other.energy
                and self.time == other.time
                and np.array_equal(self.position, other.position)
                and np.array_equal(self.direction, other.direction))

    __hash__ = None

    def __repr__(self) -> str:
        return (f"ParticleState(id={self.species}, E={self.energy:.4g}, "
                f"x={tuple(np.round(self.position, 4))})")


class SerialNumberCounter:
    """
    Strictly increasing serial number source shared by a simulation run.

    Allocation is guarded by a lock so candidates created concurrently on
    different worker threads never share a number.
    """

    def __init__(self, start: int = 1):
        self._next = int(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            snr = self._next
            self._next += 1
        return snr

    def peek(self) -> int:
        with self._lock:
            return self._next

    def reset(self, start: int = 1):
        with self._lock:
            self._next = int(start)

    def __repr__(self) -> str:
        return f"SerialNumberCounter(next={self.peek()})"


class Candidate:
    """
    One Monte Carlo sample path and its ancestry.

    Attributes:
        current: State being advanced in this step
        previous: State at the end of the prior step
        source: Initial state of the primary this tree descends from
        created: State at creation of this candidate
        weight: Statistical weight (1/weight real particles represented)
        serial_number: Unique id within the run's SerialNumberCounter
        secondaries: Candidates owned by this one (append-only)
        tag: Interaction tag, 'PRIM' for primaries and their split copies
    """

    def __init__(self, state: Optional[ParticleState] = None,
                 weight: float = 1.0,
                 serials: Optional[SerialNumberCounter] = None,
                 tag: str = 'PRIM'):
        if state is None:
            state = ParticleState()
        if weight <= 0:
            raise ValueError(f"Weight must be positive, got {weight}")

        self.current = state.copy()
        self.previous = state.copy()
        self.source = state.copy()
        self.created = state.copy()

        self.weight = float(weight)
        self.tag = tag
        self.trajectory_length = 0.0
        self.properties = {}
        self.secondaries: List['Candidate'] = []

        self._serials = serials if serials is not None else SerialNumberCounter()
        self.serial_number = self._serials.next()
        self._parent = None
        self._active = True
        self._n_scheduled = 0

    # Ancestry -----------------------------------------------------------
    @property
    def parent(self) -> Optional['Candidate']:
        """Candidate that spawned this one, if it is still alive."""
        if self._parent is None:
            return None
        return self._parent()

    @parent.setter
    def parent(self, candidate: Optional['Candidate']):
        self._parent = None if candidate is None else weakref.ref(candidate)

    @property
    def serials(self) -> SerialNumberCounter:
        return self._serials

    def ancestry(self) -> Iterator['Candidate']:
        """Walk the parent chain up to the primary (or first dropped link)."""
        parent = self.parent
        while parent is not None:
            yield parent
            parent = parent.parent

    # Lifecycle ----------------------------------------------------------
    def is_active(self) -> bool:
        return self._active

    def set_active(self, active: bool):
        self._active = bool(active)

    @property
    def active(self) -> bool:
        return self._active

    def update_weight(self, factor: float):
        """Multiply the weight by factor (> 0)."""
        if factor <= 0:
            raise ValueError(f"Weight factor must be positive, got {factor}")
        self.weight *= factor

    def add_secondary(self, candidate: 'Candidate'):
        if candidate.parent is None:
            candidate.parent = self
        self.secondaries.append(candidate)

    def pending_secondaries(self) -> List['Candidate']:
        """Secondaries added since the last call; they stay owned here."""
        pending = self.secondaries[self._n_scheduled:]
        self._n_scheduled = len(self.secondaries)
        return pending

    def clone(self, recursive: bool = False) -> 'Candidate':
        """
        Copy this candidate under a fresh serial number.

        The copy shares nothing mutable with the original; its parent is
        this candidate. Secondaries are only copied when recursive is True.
        """
        new = Candidate.__new__(Candidate)
        new.current = self.current.copy()
        new.previous = self.previous.copy()
        new.source = self.source.copy()
        new.created = self.current.copy()
        new.weight = self.weight
        new.tag = self.tag
        new.trajectory_length = self.trajectory_length
        new.properties = dict(self.properties)
        new.secondaries = []
        new._serials = self._serials
        new.serial_number = self._serials.next()
        new._active = self._active
        new._n_scheduled = 0
        new.parent = self

        if recursive:
            for secondary in self.secondaries:
                child = secondary.clone(recursive=True)
                child.parent = new
                new.secondaries.append(child)
        return new

    # Properties ---------------------------------------------------------
    def set_property(self, name: str, value=True):
        self.properties[name] = value

    def get_property(self, name: str, default=None):
        return self.properties.get(name, default)

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def remove_property(self, name: str):
        self.properties.pop(name, None)

    def __repr__(self) -> str:
        status = "active" if self._active else "inactive"
        return (f"Candidate(#{self.serial_number}, E={self.current.energy:.4g}, "
                f"w={self.weight:.4e}, n_sec={len(self.secondaries)}, {status})")
