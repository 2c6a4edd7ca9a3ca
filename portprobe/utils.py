import re
from typing import List, Optional, Tuple

from .config import MAX_PORT, MIN_PORT, ScanConfig
from .errors import ConfigurationError

_RANGE_RE = re.compile(r'^\s*(\d+)\s*-\s*(\d+)\s*$')
_CONTROL_RE = re.compile(r'[\x00-\x08\x0b-\x1f\x7f]')


def enumerate_ports(config: ScanConfig) -> List[int]:
    """
    Expands a config into the ports to probe: the inclusive range, or the
    explicit list in its configured order (never re-sorted).
    """
    if config.is_range_scan:
        return list(range(config.start_port, config.end_port + 1))
    return list(config.ports)


def parse_range(port_input: str) -> Optional[Tuple[int, int]]:
    """
    Returns (start, end) when the input is a single "start-end" range, else None.
    Endpoints are returned as typed; clamping happens in ScanConfig.
    Example: "8000-8100" -> (8000, 8100)
    """
    m = _RANGE_RE.match(port_input)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def parse_ports(port_input: str) -> List[int]:
    """
    Parses a string of ports (spaces, commas, ranges) into an ordered list of integers.
    Order of first appearance is kept and repeats are dropped.
    Example: "443 80 1000-1002" -> [443, 80, 1000, 1001, 1002]
    """
    ports = []
    seen = set()

    def add(p):
        if MIN_PORT <= p <= MAX_PORT and p not in seen:
            seen.add(p)
            ports.append(p)

    # Replace commas with spaces to handle both formats
    tokens = port_input.replace(',', ' ').split()

    for token in tokens:
        if '-' in token:
            try:
                start, end = map(int, token.split('-'))
            except ValueError:
                raise ConfigurationError(f"Invalid port range: {token!r}") from None
            # Clamp to valid range 1-65535
            start = max(MIN_PORT, start)
            end = min(MAX_PORT, end)
            if start > end:
                raise ConfigurationError(f"Inverted port range: {token!r}")
            for p in range(start, end + 1):
                add(p)
        else:
            try:
                add(int(token))
            except ValueError:
                raise ConfigurationError(f"Invalid port: {token!r}") from None
    return ports


def clean_banner(banner: str, limit: int = 50) -> str:
    """
    Prepares banner text for display: strips control characters,
    collapses whitespace and truncates to `limit` characters.
    """
    if not banner:
        return ""
    text = _CONTROL_RE.sub('', banner)
    text = ' '.join(text.split())
    if len(text) > limit:
        text = text[:limit] + "..."
    return text
