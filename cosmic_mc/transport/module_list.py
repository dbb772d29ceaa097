"""
ModuleList: ordered module pipeline and candidate scheduler.

Drives candidates through the configured modules one step at a time until
they become inactive. Secondaries appended during a step (split copies,
decay products, ...) are scheduled as new work units that start from the
head of the pipeline; the parent always finishes its current step first
and is then re-queued behind its secondaries.

Two drivers are provided:
    - run_candidate(): serial, depth-first, for one candidate tree
    - run() / run_candidates(): a pool of worker threads sharing one queue
"""

import multiprocessing as mp
import queue
import threading
import time
from multiprocessing.pool import ThreadPool
from typing import Iterable, List, Optional

from tqdm import tqdm

from cosmic_mc.core.module import Module
from cosmic_mc.core.particle import Candidate, SerialNumberCounter


class _RunStatistics:
    """Counters shared by the worker threads of one run."""

    def __init__(self, primary_serials, progress):
        self.n_steps = 0
        self.n_secondaries = 0
        self.n_finished = 0
        self.n_primaries_finished = 0
        self._primary_serials = primary_serials
        self._progress = progress
        self._lock = threading.Lock()

    def add(self, n_steps: int = 0, n_secondaries: int = 0):
        with self._lock:
            self.n_steps += n_steps
            self.n_secondaries += n_secondaries

    def finish(self, candidate: Candidate):
        """Count a terminal candidate."""
        with self._lock:
            self.n_finished += 1
            if candidate.serial_number in self._primary_serials:
                self.n_primaries_finished += 1
                self._progress.update(1)


class ModuleList:
    """
    Ordered sequence of modules plus the scheduler running candidates through it.

    Example:
        modules = ModuleList()
        modules.add(ShockAcceleration(energy_gain=0.1, escape_probability=0.1))
        modules.add(CandidateSplitting.from_spectral_index(2.0, 1.0, 4))
        modules.add(Observer(PropertyFlag('escaped')))
        modules.add(MaximumTrajectoryLength(1000))
        stats = modules.run(source, count=1000)
    """

    def __init__(self, modules: Optional[Iterable[Module]] = None):
        """
        Initialize module list.

        Parameters:
            modules: Modules to add, in processing order
        """
        self.modules: List[Module] = []
        # serial numbers of everything created during runs of this list
        self.serials = SerialNumberCounter()

        for module in modules or []:
            self.add(module)

    # --- Pipeline management ---

    def add(self, module: Module):
        """Append a module; modules see changes made by earlier ones in the same step."""
        if not hasattr(module, 'process'):
            raise TypeError(f"{module!r} has no process(candidate) method")
        self.modules.append(module)

    def remove(self, index: int):
        del self.modules[index]

    def get_modules(self) -> List[Module]:
        return list(self.modules)

    def __len__(self) -> int:
        return len(self.modules)

    def __iter__(self):
        return iter(self.modules)

    def __getitem__(self, index: int) -> Module:
        return self.modules[index]

    def get_description(self) -> str:
        lines = ["ModuleList"]
        for module in self.modules:
            describe = getattr(module, 'get_description', None)
            lines.append(f"  {describe() if describe else module!r}")
        return "\n".join(lines)

    def show_modules(self):
        print(self.get_description())

    # --- Processing ---

    def process(self, candidate: Candidate):
        """
        Advance a candidate by one step.

        The current state is copied into previous, then every module is
        applied in order.
        """
        candidate.previous = candidate.current.copy()
        for module in self.modules:
            module.process(candidate)

    def run_candidate(self, candidate: Candidate, recursive: bool = True) -> int:
        """
        Run one candidate (and, if recursive, its secondaries) to completion.

        Serial driver: secondaries produced in a step are run to completion
        before the parent continues.

        Returns:
            Number of steps processed
        """
        n_steps = 0
        stack = [candidate]

        while stack:
            current = stack.pop()
            while current.is_active():
                self.process(current)
                n_steps += 1
                if not recursive:
                    continue
                pending = current.pending_secondaries()
                if pending:
                    if current.is_active():
                        stack.append(current)
                    stack.extend(reversed(pending))
                    break

        return n_steps

    def run(self, source, count: int, recursive: bool = True,
            n_workers: Optional[int] = None, show_progress: bool = False,
            verbose: bool = False) -> dict:
        """
        Draw count primaries from source and run them to completion.

        Parameters:
            source: Object with get_candidate(serials) -> Candidate
            count: Number of primaries
            recursive: Also process secondaries
            n_workers: Worker threads (default: cpu_count)
            show_progress: Display a progress bar over primaries
            verbose: Print a run summary

        Returns:
            Dictionary with run statistics
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")

        primaries = [source.get_candidate(self.serials) for _ in range(count)]
        return self.run_candidates(primaries, recursive=recursive,
                                   n_workers=n_workers,
                                   show_progress=show_progress,
                                   verbose=verbose)

    def run_candidates(self, candidates: Iterable[Candidate], recursive: bool = True,
                       n_workers: Optional[int] = None, show_progress: bool = False,
                       verbose: bool = False) -> dict:
        """
        Run the given candidates to completion on a pool of worker threads.

        Each queued candidate is owned by exactly one worker until it is
        either inactive or re-queued behind the secondaries of its last
        step. The first exception raised by a module aborts the run: all
        workers stop drawing work, outstanding candidates are discarded
        and the exception is re-raised here.
        """
        if n_workers is None:
            n_workers = mp.cpu_count()
        n_workers = max(1, int(n_workers))

        # parents are only weakly linked from their secondaries, so the
        # roots must stay alive until the run ends
        roots = list(candidates)
        work = queue.Queue()
        primary_serials = set()
        for candidate in roots:
            work.put(candidate)
            primary_serials.add(candidate.serial_number)
        n_primaries = len(roots)

        if verbose:
            print(f"\nRunning {n_primaries} candidates on {n_workers} workers...")
            print(f"  Modules: {len(self.modules)}")

        abort = threading.Event()
        errors = []
        progress = tqdm(total=n_primaries, disable=not show_progress,
                        unit='primaries', desc='ModuleList')
        stats = _RunStatistics(primary_serials, progress)

        def worker(worker_id):
            while True:
                candidate = work.get()
                if candidate is None:
                    work.task_done()
                    return
                try:
                    if not abort.is_set():
                        self._advance(candidate, work, abort, stats, recursive)
                except Exception as exc:
                    errors.append(exc)
                    abort.set()
                finally:
                    work.task_done()

        start_time = time.time()

        with ThreadPool(n_workers) as pool:
            result = pool.map_async(worker, range(n_workers))
            try:
                work.join()
            except KeyboardInterrupt:
                abort.set()
                work.join()
                raise
            finally:
                for _ in range(n_workers):
                    work.put(None)
                result.wait()

        progress.close()
        elapsed = time.time() - start_time

        if errors:
            raise errors[0]

        n_candidates = n_primaries + stats.n_secondaries
        rate = n_candidates / elapsed if elapsed > 0 else 0.0

        if verbose:
            print(f"\nRun complete:")
            print(f"  Time: {elapsed:.2f}s")
            print(f"  Candidates: {n_candidates:,} ({stats.n_secondaries:,} secondaries)")
            print(f"  Total steps: {stats.n_steps:,}")
            print(f"  Rate: {rate:.0f} candidates/sec")

        return {
            'n_primaries': n_primaries,
            'n_candidates': n_candidates,
            'n_secondaries': stats.n_secondaries,
            'n_steps': stats.n_steps,
            'n_finished': stats.n_finished,
            'elapsed_time': elapsed,
            'candidates_per_sec': rate,
        }

    def _advance(self, candidate: Candidate, work: queue.Queue,
                 abort: threading.Event, stats: _RunStatistics, recursive: bool):
        """Step one candidate until it is inactive or has new secondaries."""
        n_steps = 0
        while candidate.is_active() and not abort.is_set():
            self.process(candidate)
            n_steps += 1

            if not recursive:
                continue
            pending = candidate.pending_secondaries()
            if pending:
                still_active = candidate.is_active()
                stats.add(n_steps, len(pending))
                if not still_active:
                    stats.finish(candidate)
                for secondary in pending:
                    work.put(secondary)
                if still_active:
                    # no access to candidate after this put
                    work.put(candidate)
                return

        stats.add(n_steps)
        if not candidate.is_active():
            stats.finish(candidate)
