"""
errors.py — Error taxonomy for the capture-transform-replace pipeline.

Only NoSelectionAcquired, AutomationFailure (during replacement),
EmptyResponse and ModelCallFailed ever reach the user. GateRejected and
ConfigCorrupt are absorbed where they happen.
"""


class StealthError(Exception):
    """Base class for every pipeline error."""


class GateRejected(StealthError):
    """Another run is active, or the previous one started too recently."""


class NoSelectionAcquired(StealthError):
    """Neither the direct copy nor the line fallback produced any text."""


class AutomationFailure(StealthError):
    """A clipboard or simulated-input operation failed."""


class EmptyResponse(StealthError):
    """The model returned no usable text."""


class ModelCallFailed(StealthError):
    """The model call itself raised."""


class ConfigCorrupt(StealthError):
    """The persisted per-action configuration could not be parsed."""
