"""Small deterministic modules used by the scheduler and splitting tests."""

from cosmic_mc.core.module import Module


class Recorder(Module):
    """Appends (name, serial_number) to a shared event list."""

    def __init__(self, name, events):
        self.name = name
        self.events = events

    def process(self, candidate):
        self.events.append((self.name, candidate.serial_number))


class EnergyScale(Module):
    """Multiplies the current energy by a constant factor."""

    def __init__(self, factor):
        self.factor = factor

    def process(self, candidate):
        candidate.current.set_energy(candidate.current.energy * self.factor)


class StepLimit(Module):
    """Counts steps in a property; on reaching n, deactivates or flags 'done'."""

    def __init__(self, n, flag_only=False):
        self.n = n
        self.flag_only = flag_only

    def process(self, candidate):
        steps = candidate.get_property('steps', 0) + 1
        candidate.set_property('steps', steps)
        if steps >= self.n:
            if self.flag_only:
                candidate.set_property('done', True)
            else:
                candidate.set_active(False)


class SpawnOnce(Module):
    """Each primary adds exactly one copy of itself as a secondary."""

    def process(self, candidate):
        if candidate.parent is None and not candidate.has_property('spawned'):
            candidate.set_property('spawned', True)
            candidate.add_secondary(candidate.clone())


class FailOnSerial(Module):
    """Raises once a candidate with serial number >= serial is processed."""

    def __init__(self, serial):
        self.serial = serial

    def process(self, candidate):
        if candidate.serial_number >= self.serial:
            raise RuntimeError(f"module failure on #{candidate.serial_number}")
