"""
errors.py

Exception types raised by the phylogenetic tree.

Lookup misses (unknown genome ids) are not errors: they are reported as None.
"""


class PTreeError(Exception):
    """Base class for all phylogenetic tree errors."""


class ConfigurationError(PTreeError, ValueError):
    """A configuration value is outside its domain."""


class UnsupportedPolicyError(PTreeError, NotImplementedError):
    """The configuration selects a policy that is not implemented."""


class HybridGenomeError(PTreeError, RuntimeError):
    """A hybrid genome was admitted while hybrid folding is disabled."""


class PTreeFormatError(PTreeError, ValueError):
    """A persisted tree document is malformed."""
