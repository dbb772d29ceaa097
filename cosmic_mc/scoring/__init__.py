"""Scoring module: Observers and weighted spectra."""

from cosmic_mc.scoring.observer import (Observer, DetectAll, EnergyAbove,
                                        SphereSurface, PropertyFlag)

__all__ = ["Observer", "DetectAll", "EnergyAbove", "SphereSurface", "PropertyFlag"]
