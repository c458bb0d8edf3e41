# errors.py

from __future__ import annotations


class PolyglotError(Exception):
    """Base class for all polyglot-agent errors."""

    pass


# ----- Control Classification -----


class RecoverableError(PolyglotError):
    """Errors reported back to the model as a tool result."""

    pass


class FatalError(PolyglotError):
    """Errors that abort the reasoning loop and reach the caller."""

    pass


# ----- Environment / Dispatch Errors -----


class InvalidIdentifierError(RecoverableError):
    pass


class UnknownFunctionError(RecoverableError):
    pass


class AttributeAccessError(RecoverableError):
    pass


# ----- Effect Errors -----


class EffectDefinitionError(PolyglotError):
    pass


class EffectArgumentError(RecoverableError):
    pass


# ----- Interop Errors -----


class ReleasedReferenceError(RecoverableError):
    """Raised by any operation on a remote reference whose handle was released."""

    def __init__(self, handle: int) -> None:
        super().__init__(f"remote reference {handle} has been released")
        self.handle = handle


# ----- Memory Errors -----


class CompactionFailure(RecoverableError):
    pass


# ----- Backend / Loop Errors -----


class TransportError(FatalError):
    """Non-success response, network failure or timeout from a chat backend."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class IterationCapExceeded(FatalError):
    pass


class MockMatchError(FatalError):
    pass
