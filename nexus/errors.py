"""Exception hierarchy for the Nexus knowledge graph.

Exception Hierarchy:
    NexusError (base)
    ├── ValidationError  - Malformed input, rejected before any write
    ├── NotFoundError    - An update addressed a node/edge id that does not exist
    └── PersistenceError - The storage collaborator failed or timed out

``ValidationError`` and ``NotFoundError`` also derive from :class:`ValueError`
so callers that only care about "bad argument" can catch that.
"""

from __future__ import annotations


class NexusError(Exception):
    """Base exception for all Nexus errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{super().__str__()} (caused by: {self.cause})"
        return super().__str__()


class ValidationError(NexusError, ValueError):
    """Input rejected before the operation was attempted.

    Raised when:
    - An edge is missing ``source`` or ``target``
    - An edge endpoint does not resolve to an existing node
    - Node/edge/search/traversal payloads fail schema validation
    - An update names a field that is not mergeable
    """

    pass


class NotFoundError(NexusError, ValueError):
    """Operation addressed a node or edge id that does not exist."""

    pass


class PersistenceError(NexusError):
    """The persistence collaborator failed.

    ``retryable`` is set when the failure was a timeout, so the caller may
    reasonably try the same write again.
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        retryable: bool = False,
    ):
        super().__init__(message, cause)
        self.retryable = retryable
