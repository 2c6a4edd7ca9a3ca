class ScanError(Exception):
    """Base class for failures that abort a whole scan."""


class ConfigurationError(ScanError):
    """Scan parameters that cannot be turned into a usable configuration."""


class HostResolutionError(ScanError):
    """The target name could not be resolved to an address."""


class ScanInterrupted(ScanError):
    """
    The wait for workers was interrupted before every port finished.
    Outcomes gathered up to that point are kept in `partial`.
    """

    def __init__(self, partial):
        super().__init__(
            f"Scan interrupted after {partial.completed}/{partial.total_ports} ports"
        )
        self.partial = partial
