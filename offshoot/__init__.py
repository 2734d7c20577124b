"""Offshoot: nested derivative files bound to the lifecycle of a primary file.

A resource type registers processors (primary file -> raw derivatives
tree) and storage backends.  A derivatives attacher tracks one record's
primary file and its arbitrarily nested derivatives tree:

  - atomic, thread-safe tree updates through a single ``set_derivatives``
  - uploading processor output into the tree
  - promoting cached derivatives to permanent storage
  - deleting derivatives, idempotently
  - round-trippable persistence, including legacy record layouts
"""

__version__ = "0.3.0"
__description__ = "Nested derivative file trees with atomic updates and storage promotion"

from offshoot.core.attacher import DerivativesAttacher
from offshoot.core.errors import (
    DerivativesError,
    InvalidPath,
    MalformedPersistedData,
    ProcessorContractViolation,
    StorageDeleteRaceNotFound,
    UnregisteredProcessor,
)
from offshoot.core.resource import ResourceType
from offshoot.core.serialization import from_plain_data, to_plain_data, upgrade_legacy
from offshoot.models.files import StoredFile

__all__ = [
    "DerivativesAttacher",
    "ResourceType",
    "StoredFile",
    "from_plain_data",
    "to_plain_data",
    "upgrade_legacy",
    "DerivativesError",
    "InvalidPath",
    "MalformedPersistedData",
    "ProcessorContractViolation",
    "StorageDeleteRaceNotFound",
    "UnregisteredProcessor",
    "__version__",
]
