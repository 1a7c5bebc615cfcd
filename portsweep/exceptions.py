# portsweep/exceptions.py


class PortSweepError(Exception):
    """Base class for all portsweep errors."""


class UsageError(PortSweepError, ValueError):
    """Invalid scan parameters (port range, worker count, target). The scan never starts."""


class SinkError(PortSweepError, OSError):
    """The report destination could not be written to."""


class ConfigError(PortSweepError):
    """The configuration file is missing, unreadable or malformed."""
