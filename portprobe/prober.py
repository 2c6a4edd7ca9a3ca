"""
Single-port TCP connect probe with optional passive banner read.

A probe either connects within the timeout (open) or it does not (not open).
Refused, timed out and filtered connections are deliberately indistinguishable.
"""

import asyncio
from dataclasses import dataclass
from typing import List

from .services import service_name


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of probing one port"""
    port: int
    is_open: bool
    service: str = ""
    banner: str = ""

    @classmethod
    def open(cls, port: int, service: str, banner: str = "") -> "ProbeOutcome":
        return cls(port=port, is_open=True, service=service, banner=banner)

    @classmethod
    def not_open(cls, port: int) -> "ProbeOutcome":
        return cls(port=port, is_open=False)


class PortProber:
    """
    Stateless prober. One instance can be shared by every worker of a scan.
    """

    MAX_BANNER_LINES = 3
    # Upper bound on how long to wait for each line after the first one
    FOLLOWUP_GRACE = 0.05
    # Most bytes kept from a partial line that never got its newline
    FRAGMENT_BYTES = 1024

    async def probe(self, host: str, port: int, timeout_ms: int, grab_banner: bool) -> ProbeOutcome:
        timeout = timeout_ms / 1000.0
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=timeout
            )
        except (asyncio.TimeoutError, OSError):
            return ProbeOutcome.not_open(port)

        banner = ""
        try:
            if grab_banner:
                banner = await self._read_banner(reader, timeout)
        finally:
            await self._close(writer)

        return ProbeOutcome.open(port, service_name(port), banner)

    async def _read_banner(self, reader: asyncio.StreamReader, timeout: float) -> str:
        """
        Reads up to MAX_BANNER_LINES lines the service sends on its own.
        The first line may take the full timeout; later lines are only
        taken if they arrive almost immediately.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        grace = min(timeout, self.FOLLOWUP_GRACE)
        lines: List[str] = []

        while len(lines) < self.MAX_BANNER_LINES:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            wait = remaining if not lines else min(grace, remaining)
            try:
                raw = await asyncio.wait_for(reader.readline(), timeout=wait)
            except asyncio.TimeoutError:
                # A greeting without a trailing newline still counts
                fragment = await self._read_fragment(reader)
                if fragment:
                    lines.append(fragment)
                break
            except (OSError, ValueError):
                # The peer misbehaved: keep what we have
                break
            if not raw:
                break
            line = raw.decode('utf-8', errors='ignore').strip()
            if line:
                lines.append(line)

        return " ".join(lines)

    async def _read_fragment(self, reader: asyncio.StreamReader) -> str:
        try:
            raw = await asyncio.wait_for(reader.read(self.FRAGMENT_BYTES), timeout=self.FOLLOWUP_GRACE)
        except (asyncio.TimeoutError, OSError):
            return ""
        return raw.decode('utf-8', errors='ignore').strip()

    @staticmethod
    async def _close(writer: asyncio.StreamWriter):
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
