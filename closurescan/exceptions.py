"""Exception hierarchy for the closure scanner."""

from __future__ import annotations


class ClosureScanError(Exception):
    """Base class for errors raised while preparing or running a scan."""


class ConfigError(ClosureScanError, ValueError):
    """Raised when a rule settings object is malformed."""


class GraphError(ClosureScanError, ValueError):
    """Raised when a scope graph is inconsistent or cannot be loaded."""
