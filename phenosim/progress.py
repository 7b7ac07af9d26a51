"""
Progress reporting for PhenoSim simulations.

The pipeline never prints on its own. Callers pass a reporter, a callable
``reporter(current, total, message)``, into ``PhenoSim.simulate``; each
pipeline step (generate a component, rescale, compose) advances it by one.
``NullReporter`` is the silent default.
"""

import sys
from typing import Callable, Optional

ReporterCallback = Callable[[int, int, str], None]


class ProgressReporter:
    """Wraps a ``(current, total, message)`` callback with step counting.

    Args:
        total: Total number of pipeline steps.
        callback: Function called as ``callback(current, total, message)``.
    """

    def __init__(self, total: int, callback: Optional[ReporterCallback] = None):
        self.total = total
        self._callback: ReporterCallback = callback if callback is not None else NullReporter()
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def start(self, message: str = "Starting simulation"):
        """Signal the beginning of the run (fires an initial 0/total update)."""
        self._current = 0
        self._callback(0, self.total, message)

    def advance(self, message: str = "", n: int = 1):
        """Advance the counter by *n* steps and fire the callback."""
        self._current = min(self._current + n, self.total)
        self._callback(self._current, self.total, message)

    def finish(self, message: str = "Done"):
        """Signal completion (fires a final total/total update if not already there)."""
        if self._current < self.total:
            self._current = self.total
            self._callback(self.total, self.total, message)


class NullReporter:
    """Reporter that discards every update."""

    def __call__(self, current: int, total: int, message: str = ""):
        pass


class PrintReporter:
    """Console reporter, prints ``\\r[3/7] Rescaling components`` to stderr."""

    def __init__(self, stream=None):
        self._stream = stream
        self._width = 0

    def __call__(self, current: int, total: int, message: str = ""):
        if total <= 0:
            return
        stream = self._stream if self._stream is not None else sys.stderr
        line = f"[{current}/{total}] {message}"
        stream.write("\r" + line.ljust(self._width))
        self._width = max(self._width, len(line))
        if current >= total:
            stream.write("\n")
            self._width = 0
        stream.flush()


class TqdmReporter:
    """Optional tqdm-based progress reporter (lazy import).

    Usage::

        from phenosim.progress import TqdmReporter
        sim.simulate(reporter=TqdmReporter())
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, current: int, total: int, message: str = ""):
        from tqdm import tqdm

        if self._bar is None:
            self._bar = tqdm(total=total, unit="step", **self._tqdm_kwargs)

        if message:
            self._bar.set_description(message)

        delta = current - self._bar.n
        if delta > 0:
            self._bar.update(delta)

        if current >= total:
            self._bar.close()
            self._bar = None
