"""Error taxonomy for derivative management.

Every error is a ``DerivativesError`` and additionally subclasses the
builtin exception callers would naturally catch for that kind of failure.
Only ``StorageDeleteRaceNotFound`` is ever recovered from inside offshoot;
everything else propagates to the caller unchanged.
"""

from __future__ import annotations


class DerivativesError(RuntimeError):
    """Base class for all offshoot errors."""


class UnregisteredProcessor(DerivativesError, KeyError):
    """Raised when a processor name has no registered function."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0]) if self.args else ""


class ProcessorContractViolation(DerivativesError, TypeError):
    """Raised when a processor returns something other than a mapping."""


class InvalidPath(DerivativesError, ValueError):
    """Raised for malformed paths or navigation through a leaf file."""


class MalformedPersistedData(DerivativesError, ValueError):
    """Raised when persisted data cannot be converted into derivatives."""


class StorageDeleteRaceNotFound(DerivativesError, FileNotFoundError):
    """Raised by a storage backend when the file to delete is already gone."""
