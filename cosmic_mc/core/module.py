"""Module capability contract shared by every processing step."""

import threading
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


class ConfigurationError(ValueError):
    """Fatal setup error; raised before any candidate is processed."""


class Module(ABC):
    """
    A pluggable unit of per-step processing.

    process() communicates only through side effects on the candidate:
    mutating candidate.current, appending secondaries, or deactivating it.
    Implementations keep no mutable state beyond their configuration so a
    single instance can serve every worker thread.
    """

    description = ""

    @abstractmethod
    def process(self, candidate) -> None:
        pass

    def get_description(self) -> str:
        return self.description or self.__class__.__name__

    def set_description(self, description: str):
        self.description = description

    def __repr__(self) -> str:
        return self.get_description()


class RandomModule(Module):
    """Module drawing random numbers from one generator per worker thread."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._local = threading.local()
        self._seed_lock = threading.Lock()
        self._n_streams = 0

    @property
    def rng(self) -> np.random.Generator:
        rng = getattr(self._local, 'rng', None)
        if rng is None:
            with self._seed_lock:
                stream = self._n_streams
                self._n_streams += 1
            if self.seed is None:
                rng = np.random.default_rng()
            else:
                rng = np.random.default_rng([self.seed, stream])
            self._local.rng = rng
        return rng
