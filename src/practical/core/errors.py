"""Error taxonomy shared by every layer of the engine."""


class EngineError(Exception):
    """Base class for every error surfaced by the engine."""

    pass


class ValidationError(EngineError):
    """Malformed command. Raised before anything is written to the store."""

    pass


class ConflictError(EngineError):
    """The server state diverged from the local copy (HTTP 409 or 404)."""

    pass


class TransientError(EngineError):
    """Network failure or timeout. Safe for the caller to retry."""

    pass


class CapacityError(EngineError):
    """A key area or list limit would be exceeded."""

    def __init__(self, resource: str, message: str | None = None):
        self.resource = resource
        super().__init__(message or f"Capacity exceeded for {resource}")


class GuardViolation(EngineError):
    """A referential or locking rule forbids the command."""

    pass


class Unauthorized(EngineError):
    """The remote service rejected our credentials."""

    pass
