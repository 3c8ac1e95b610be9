"""Exception hierarchy for the scan-matching core."""


class ScanMatchError(Exception):
    """Base class for every error raised by :mod:`scanmatch`."""


class InsufficientDataError(ScanMatchError, ValueError):
    """Raised when a scan, reference set or correspondence set is empty."""


class ConfigError(ScanMatchError):
    """Raised when a configuration file cannot be read or is malformed."""
