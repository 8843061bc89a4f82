"""Pulseboard — Error Taxonomy.

Storage, remote and domain failures share one root so callers can catch
``PulseboardError`` at the outermost seam.
"""

import re
from typing import List, Optional, Tuple


class PulseboardError(Exception):
    """Root of every error raised by the data-access layer."""


# ── Storage ──


class StorageError(PulseboardError):
    """The storage backend rejected or failed an operation."""


class ConnectionFailedError(StorageError):
    """Raised when the storage connection cannot be established."""


class DuplicateEntityError(StorageError):
    """A uniqueness constraint was violated."""


class InvalidIdError(PulseboardError, ValueError):
    """An entity id is not in the expected format."""

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Invalid id: {entity_id!r}")


# ── Domain ──


class NotFoundError(PulseboardError, LookupError):
    """A record required by the operation does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ValidationError(PulseboardError, ValueError):
    """Malformed input. Always surfaced, never masked by fallback."""


class InvalidTransitionError(ValidationError):
    """A content suggestion status change that the state machine forbids."""

    MESSAGE = re.compile(r"Cannot move suggestion from '(\w+)' to '(\w+)'")

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move suggestion from '{current}' to '{requested}'")

    @classmethod
    def from_message(cls, message: str) -> Optional["InvalidTransitionError"]:
        """Rebuild the error from its text, as relayed by the backend."""
        match = cls.MESSAGE.search(message or "")
        return cls(*match.groups()) if match else None


# ── Remote ──


class RemoteAPIError(PulseboardError):
    """Raised when the backend API is unreachable or answers non-2xx."""

    def __init__(self, message: str, status_code: int = 0, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class ParseError(RemoteAPIError):
    """The backend answered with a body that is not valid JSON."""


# ── Fallback ──


class AllTiersFailedError(PulseboardError):
    """Every fallback tier failed for one operation."""

    def __init__(self, operation: str, errors: List[Tuple[str, BaseException]]):
        self.operation = operation
        self.errors = errors
        detail = "; ".join(f"{tier}: {err}" for tier, err in errors)
        super().__init__(f"Could not complete {operation} ({detail})")
