"""
Custom exceptions for FLEETGUARD.

All exceptions inherit from FleetGuardError for easy catching.

Domain computations (scoring, allocation, correlation, readiness) never
raise on bad or missing data; they fail closed and return structured
results. Exceptions are reserved for configuration and programming errors.
"""


class FleetGuardError(Exception):
    """Base exception for all FLEETGUARD errors."""

    pass


class ConfigurationError(FleetGuardError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: str | None = None):
        self.config_key = config_key
        super().__init__(message)


class TransitionTableError(FleetGuardError):
    """
    Raised when a state machine is built from an invalid transition table.

    Caught at construction time so a misspelled state can never produce
    a transition check that is silently always false.
    """

    def __init__(
        self,
        message: str,
        domain: str | None = None,
        state: str | None = None,
    ):
        self.domain = domain
        self.state = state
        super().__init__(message)


class SnapshotError(FleetGuardError):
    """Raised when a fleet snapshot file cannot be parsed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)
