# TrainScope — Errors

"""
Exception hierarchy for the visualization core.

Empty data and failed alignments are states, not exceptions; only
malformed payloads, export failures and cache writes raise.
"""


class TrainScopeError(Exception):
    """Base class for TrainScope errors."""


class PayloadError(TrainScopeError):
    """A remote payload failed shape validation at the fetch boundary."""


class ExportError(TrainScopeError):
    """A snapshot or animation export failed; partial output was discarded."""


class ExportCancelled(ExportError):
    """An animation export was cancelled before completion."""


class CacheWriteError(TrainScopeError):
    """A value could not be stored in the bounded cache."""
