"""Exception hierarchy for the modelmatch client.

Only whole-operation failures are raised.  Conditions that are recovered
per node or per model (stub substitution, a skipped match query, a failed
metadata write) are recorded as plain dataclasses next to the component that
produces them and surface in that component's report instead.
"""

from __future__ import annotations


class ModelMatchError(Exception):
    """Base class of every error raised by this package."""


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class ClientError(ModelMatchError):
    """A remote call did not produce a usable response."""


class NotFoundError(ClientError):
    """HTTP 404: the referenced resource does not exist (e.g. a dangling child)."""


class UnauthorizedError(ClientError):
    """HTTP 401: the access token is missing, expired or invalid."""


class ForbiddenError(ClientError):
    """HTTP 403: the token is valid but lacks permission for this tenant."""


class RemoteUnavailableError(ClientError):
    """Timeout, connection failure or an unexpected HTTP status."""


class ResponseParsingError(ClientError):
    """The response body did not match the expected schema."""


class AuthenticationError(ModelMatchError):
    """No access token could be obtained for the tenant."""


# ---------------------------------------------------------------------------
# Whole-operation failures
# ---------------------------------------------------------------------------

class FolderNotFoundError(ModelMatchError):
    """One or more requested folder names do not exist in the tenant."""

    def __init__(self, names: list[str]) -> None:
        self.names = sorted(names)
        super().__init__(f"Folder(s) not found: {', '.join(self.names)}")


class ResolutionError(ModelMatchError):
    """The root of an assembly could not be looked up."""

    def __init__(self, model_id: str, reason: str) -> None:
        self.model_id = model_id
        self.reason = reason
        super().__init__(f"Failed to resolve assembly root {model_id}: {reason}")


class StructureError(ModelMatchError):
    """The assembly tree contains a cycle or exceeds the maximum depth."""


class AllQueriesFailedError(ModelMatchError):
    """Every match query of a graph build or propagation pass failed."""

    def __init__(self, failed: int) -> None:
        self.failed = failed
        super().__init__(
            f"All {failed} match quer{'y' if failed == 1 else 'ies'} failed; "
            "refusing to emit an empty report"
        )
