import asyncio
import itertools
import time
from typing import List, Optional

from .collector import ResultCollector, ScanResult
from .config import ScanConfig
from .errors import ScanInterrupted
from .progress import CompletionCounter, ProgressReporter
from .prober import PortProber, ProbeOutcome
from .ui import ScannerUI
from .utils import enumerate_ports


class ScanEngine:
    """
    Fans one probe task per port out to a bounded pool of workers and fans
    the outcomes back in once every worker has finished.

    Workers finish in whatever order the network dictates; ordering is left
    entirely to the ResultCollector. The completion counter is the only state
    every worker writes to. Each worker appends outcomes to a bucket it owns.
    """

    # Safety net for the final join, not a normal control path
    WAIT_CEILING = 30 * 60

    def __init__(self, prober: Optional[PortProber] = None, ui: Optional[ScannerUI] = None,
                 wait_ceiling: float = WAIT_CEILING, progress_interval: float = 0.5):
        self.prober = prober or PortProber()
        self.ui = ui or ScannerUI()
        self.wait_ceiling = wait_ceiling
        self.progress_interval = progress_interval

    def scan(self, config: ScanConfig) -> ScanResult:
        """Blocking entry point: runs the scan in a fresh event loop."""
        return asyncio.run(self.execute(config))

    async def execute(self, config: ScanConfig) -> ScanResult:
        start_time = time.time()

        ports = enumerate_ports(config)
        total = len(ports)
        counter = CompletionCounter()

        # No point in idle workers when there are fewer ports than workers
        worker_count = min(config.workers, total)
        # Bounded queue: ports are fed in as workers drain them
        queue = asyncio.Queue(maxsize=worker_count * 2)
        buckets: List[List[ProbeOutcome]] = [[] for _ in range(worker_count)]

        async def producer():
            for port in ports:
                await queue.put(port)
            # Sentinels to stop consumers
            for _ in range(worker_count):
                await queue.put(None)

        async def consumer(bucket: List[ProbeOutcome]):
            while True:
                port = await queue.get()
                if port is None:
                    break
                outcome = await self._run_probe(config, port)
                counter.increment()
                bucket.append(outcome)
                if config.verbose:
                    self.ui.show_probe(outcome)

        reporter = None
        if config.show_progress:
            reporter = ProgressReporter(counter, total, ui=self.ui, interval=self.progress_interval)
            reporter.start()

        producer_task = asyncio.create_task(producer())
        workers = [asyncio.create_task(consumer(bucket)) for bucket in buckets]

        try:
            done, pending = await asyncio.wait(workers, timeout=self.wait_ceiling)
        except asyncio.CancelledError:
            producer_task.cancel()
            for worker in workers:
                worker.cancel()
            partial = await self._finish(config, reporter, buckets, total, start_time)
            raise ScanInterrupted(partial) from None

        if pending:
            # Stop feeding work; probes already in flight are left to finish on their own
            producer_task.cancel()
            self._release_workers(queue, worker_count)
            self.ui.show_message(
                f"Gave up waiting after {self.wait_ceiling:.0f}s; "
                f"{counter.value}/{total} ports completed",
                style="yellow"
            )
        else:
            await producer_task

        result = await self._finish(config, reporter, buckets, total, start_time)
        # Surface anything that escaped a worker
        for worker in done:
            worker.result()
        return result

    @staticmethod
    def _release_workers(queue: asyncio.Queue, worker_count: int):
        """
        Drops every port still queued and hands each worker a sentinel, so
        busy workers exit after their current probe and idle ones exit now.
        """
        while True:
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        # Room for 2 * worker_count items, so these always fit
        for _ in range(worker_count):
            queue.put_nowait(None)

    async def _run_probe(self, config: ScanConfig, port: int) -> ProbeOutcome:
        try:
            return await self.prober.probe(config.host, port, config.timeout_ms, config.grab_banner)
        except Exception as e:
            # A probe must always produce an outcome, whatever went wrong inside it
            if config.verbose:
                self.ui.show_message(f"Scan error on port {port}: {e}", style="dim")
            return ProbeOutcome.not_open(port)

    @staticmethod
    async def _finish(config: ScanConfig, reporter: Optional[ProgressReporter],
                      buckets: List[List[ProbeOutcome]], total: int, start_time: float) -> ScanResult:
        if reporter is not None:
            await reporter.stop()
        duration_ms = int((time.time() - start_time) * 1000)
        # Snapshot now: stragglers past the ceiling may still append later
        outcomes = list(itertools.chain.from_iterable(buckets))
        return ResultCollector.collect(config.host, outcomes, total, duration_ms)
