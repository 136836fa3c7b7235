"""Exception taxonomy surfaced by the workspace core."""

from __future__ import annotations


class WorkspaceError(Exception):
    """Base class for every failure the core reports to its callers."""


class DimensionMismatch(WorkspaceError, ValueError):
    """Two embeddings of different length were compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Embeddings must have the same dimensions ({left} != {right})")
        self.left = left
        self.right = right


class InvalidRequest(WorkspaceError, ValueError):
    """The caller's input cannot be processed as given."""


class UnsupportedModel(WorkspaceError):
    """The model identifier is not in the registry."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f'Model "{model_id}" is not supported')
        self.model_id = model_id


class ProviderUnavailable(WorkspaceError):
    """The backend family cannot be used from this execution context."""

    def __init__(self, family: str, reason: str) -> None:
        super().__init__(f"{family} models are unavailable: {reason}")
        self.family = family
        self.reason = reason


class BackendError(WorkspaceError):
    """An adapter's underlying call failed.

    The upstream exception is kept on ``original`` (and chained as
    ``__cause__`` by the raiser) so diagnostics are never lost.
    """

    def __init__(
        self,
        message: str,
        family: str | None = None,
        model_id: str | None = None,
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.family = family
        self.model_id = model_id
        self.original = original
        self.status_code = getattr(original, "status_code", None)


class EmbeddingUnavailable(WorkspaceError):
    """The embedding provider failed while storing or retrieving memories."""


class MemoryStoreError(WorkspaceError):
    """The memory store could not read or write records."""
