"""
Observers: detection modules and their in-memory record store.

An Observer is wired into the ModuleList like any other module. When all
of its features detect a candidate it stores a flattened record (current
state, primary source state, weight, provenance) and, by default,
deactivates the candidate.
"""

import threading
from typing import Callable, List, Sequence, Tuple

import numpy as np

from cosmic_mc.core.module import ConfigurationError, Module


# Flattened detection record (Structure of Arrays after to_array)
DETECTION_DTYPE = np.dtype([
    ('serial_number', np.int64),
    ('parent_serial_number', np.int64),   # -1 for primaries
    ('tag', 'U16'),
    ('weight', np.float64),
    ('species', np.int64),
    ('energy', np.float64),
    ('position', np.float64, 3),
    ('direction', np.float64, 3),
    ('time', np.float64),
    ('trajectory_length', np.float64),
    ('source_species', np.int64),
    ('source_energy', np.float64),
    ('source_position', np.float64, 3),
])


class DetectAll:
    """Detects every candidate."""

    def __call__(self, candidate) -> bool:
        return True


class EnergyAbove:
    """Detects candidates with current energy >= energy."""

    def __init__(self, energy: float):
        self.energy = float(energy)

    def __call__(self, candidate) -> bool:
        return candidate.current.energy >= self.energy


class SphereSurface:
    """Detects candidates crossing the surface of a sphere in either direction."""

    def __init__(self, center: Tuple[float, float, float], radius: float):
        if radius <= 0:
            raise ConfigurationError(f"SphereSurface: radius must be > 0, got {radius}")
        self.center = np.array(center, dtype=np.float64)
        self.radius = float(radius)

    def __call__(self, candidate) -> bool:
        d_curr = np.linalg.norm(candidate.current.position - self.center) - self.radius
        d_prev = np.linalg.norm(candidate.previous.position - self.center) - self.radius
        return d_curr * d_prev <= 0 and d_curr != d_prev


class PropertyFlag:
    """Detects candidates carrying the given property."""

    def __init__(self, name: str):
        self.name = name

    def __call__(self, candidate) -> bool:
        return candidate.has_property(self.name)


class Observer(Module):
    """
    Record candidates meeting every configured detection feature.

    Example:
        observer = Observer(PropertyFlag('escaped'))
        modules.add(observer)
        ...
        records = observer.to_array()
        E, w = records['energy'], records['weight']
    """

    def __init__(self, *features: Callable, deactivate: bool = True):
        self.features: List[Callable] = list(features) or [DetectAll()]
        self.deactivate = deactivate
        self._records = []
        self._lock = threading.Lock()

    def add(self, feature: Callable):
        self.features.append(feature)

    def process(self, candidate) -> None:
        if not candidate.is_active():
            return
        for feature in self.features:
            if not feature(candidate):
                return

        record = self._flatten(candidate)
        with self._lock:
            self._records.append(record)

        if self.deactivate:
            candidate.set_active(False)

    @staticmethod
    def _flatten(candidate) -> tuple:
        parent = candidate.parent
        current = candidate.current
        source = candidate.source
        return (
            candidate.serial_number,
            -1 if parent is None else parent.serial_number,
            candidate.tag,
            candidate.weight,
            current.species,
            current.energy,
            current.position.copy(),
            current.direction.copy(),
            current.time,
            candidate.trajectory_length,
            source.species,
            source.energy,
            source.position.copy(),
        )

    @property
    def n_detected(self) -> int:
        with self._lock:
            return len(self._records)

    def to_array(self) -> np.ndarray:
        """Return all records as a structured array (DETECTION_DTYPE)."""
        with self._lock:
            records = list(self._records)
        return np.array(records, dtype=DETECTION_DTYPE)

    def clear(self):
        with self._lock:
            self._records = []

    def get_description(self) -> str:
        names = ", ".join(type(f).__name__ for f in self.features)
        return f"Observer: [{names}], deactivate={self.deactivate}"


def observed_energies(observers: Sequence[Observer]) -> Tuple[np.ndarray, np.ndarray]:
    """Concatenate (energy, weight) of several observers."""
    arrays = [obs.to_array() for obs in observers]
    if not arrays:
        return np.zeros(0), np.zeros(0)
    data = np.concatenate(arrays)
    return data['energy'], data['weight']
