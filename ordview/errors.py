"""Error taxonomy shared by the inscription view pipeline."""

from __future__ import annotations


class ViewError(RuntimeError):
    """Base class for failures surfaced while materializing inscription views."""


class NotFoundError(ViewError):
    """Raised when a requested inscription, number, block, or output is unknown."""

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class BadRequestError(ViewError):
    """Raised when caller-supplied range or pagination parameters are invalid."""


class UpstreamUnavailableError(ViewError):
    """Raised when the node cannot list pending transactions."""


class IndexLookupError(ViewError):
    """Raised when the confirmed index fails to answer a lookup."""


__all__ = [
    "ViewError",
    "NotFoundError",
    "BadRequestError",
    "UpstreamUnavailableError",
    "IndexLookupError",
]
