from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError

MIN_PORT = 1
MAX_PORT = 65535

DEFAULT_TIMEOUT_MS = 200
MIN_TIMEOUT_MS = 50
MAX_TIMEOUT_MS = 5000

DEFAULT_WORKERS = 100
MIN_WORKERS = 1
MAX_WORKERS = 500


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class ScanConfig(BaseModel):
    """
    Validation model for scan parameters.
    Numeric settings are clamped into their safe ranges instead of rejected;
    only a structurally unusable port selection is an error.
    Exactly one of (start_port, end_port) or ports must be given.
    """
    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1)
    start_port: Optional[int] = None
    end_port: Optional[int] = None
    ports: Optional[Tuple[int, ...]] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    workers: int = DEFAULT_WORKERS
    grab_banner: bool = False
    show_progress: bool = True
    verbose: bool = False

    @field_validator('timeout_ms')
    @classmethod
    def clamp_timeout(cls, v):
        return _clamp(v, MIN_TIMEOUT_MS, MAX_TIMEOUT_MS)

    @field_validator('workers')
    @classmethod
    def clamp_workers(cls, v):
        return _clamp(v, MIN_WORKERS, MAX_WORKERS)

    @field_validator('start_port', 'end_port')
    @classmethod
    def clamp_port(cls, v):
        if v is None:
            return v
        return _clamp(v, MIN_PORT, MAX_PORT)

    @field_validator('ports')
    @classmethod
    def validate_ports(cls, v):
        if v is None:
            return v
        # Keep the configured order, drop invalid ports and repeats
        seen = set()
        valid = []
        for p in v:
            if MIN_PORT <= p <= MAX_PORT and p not in seen:
                seen.add(p)
                valid.append(p)
        if not valid:
            raise ValueError("No valid ports found in range 1-65535")
        return tuple(valid)

    @model_validator(mode='after')
    def check_selection(self):
        has_range = self.start_port is not None or self.end_port is not None
        if has_range and self.ports is not None:
            raise ValueError("Give either a port range or a port list, not both")
        if not has_range and self.ports is None:
            raise ValueError("No ports selected")
        if has_range:
            if self.start_port is None or self.end_port is None:
                raise ValueError("A port range needs both a start and an end port")
            if self.start_port > self.end_port:
                raise ValueError(
                    f"startPort must be <= endPort (got {self.start_port}-{self.end_port})"
                )
        return self

    @classmethod
    def for_range(cls, host: str, start_port: int, end_port: int, **options) -> "ScanConfig":
        return cls._build(host=host, start_port=start_port, end_port=end_port, **options)

    @classmethod
    def for_ports(cls, host: str, ports: Iterable[int], **options) -> "ScanConfig":
        return cls._build(host=host, ports=tuple(ports), **options)

    @classmethod
    def _build(cls, **fields) -> "ScanConfig":
        try:
            return cls(**fields)
        except ValidationError as e:
            messages = "; ".join(err['msg'] for err in e.errors())
            raise ConfigurationError(messages) from e

    @property
    def is_range_scan(self) -> bool:
        return self.ports is None

    @property
    def port_count(self) -> int:
        if self.is_range_scan:
            return self.end_port - self.start_port + 1
        return len(self.ports)

    @property
    def timeout(self) -> float:
        """Timeout in seconds, as asyncio expects it."""
        return self.timeout_ms / 1000.0
