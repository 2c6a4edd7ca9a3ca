import asyncio
import contextlib
import threading
from typing import Optional

from rich.progress import Progress

from .ui import ScannerUI


class CompletionCounter:
    """
    Monotonic count of finished probe tasks.
    Workers only increment it, the progress reporter only reads it.
    """
    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class ProgressReporter:
    """
    Samples a CompletionCounter every `interval` seconds and renders a progress bar.
    Runs as its own task beside the workers and never touches scan state.
    """
    def __init__(self, counter: CompletionCounter, total: int, ui: Optional[ScannerUI] = None, interval: float = 0.5):
        self.counter = counter
        self.total = total
        self.ui = ui or ScannerUI()
        self.interval = interval
        self.last_completed = 0
        self._progress: Optional[Progress] = None
        self._task_id = None
        self._runner: Optional[asyncio.Task] = None

    def start(self):
        # Refresh only on our own cadence, not rich's background thread
        self._progress = self.ui.create_progress(auto_refresh=False)
        self._progress.start()
        self._task_id = self._progress.add_task(
            f"[cyan]Scanning {self.total} ports...", total=self.total
        )
        self._runner = asyncio.create_task(self._run())

    async def _run(self):
        while True:
            self._refresh()
            await asyncio.sleep(self.interval)

    def _refresh(self):
        done = self.counter.value
        self.last_completed = done
        self._progress.update(self._task_id, completed=done)
        self._progress.refresh()

    async def stop(self):
        """
        Best-effort stop: cancels the sampler, then renders one last readout.
        """
        if self._runner is None:
            return
        self._runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._runner
        self._runner = None
        self._refresh()
        self._progress.stop()
