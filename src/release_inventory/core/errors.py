"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
InventoryReadError is recoverable, the compiler starts from an empty catalog.
CompileFailed aborts the whole batch and leaves the catalog file untouched.
ManifestParseError from the detector is not the same thing as an unknown version.

Ambiguous and unknown detections are results, never errors.
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for all release inventory exceptions."""


class InvalidVersion(InventoryError):
    """Raised when a version string is not a usable semantic version."""


class ManifestParseError(InventoryError):
    """Raised when manifest YAML is malformed or a document has no kind."""


class FetchFailed(InventoryError):
    """Raised when listing release tags or downloading a release bundle fails."""


class InventoryReadError(InventoryError):
    """Raised when the persisted catalog is missing or malformed."""


class CompileFailed(InventoryError):
    """
    Raised when one unit of compile work fails.

    version and phase tell the operator which release broke and where.
    phase is fetch or normalize.
    """

    def __init__(self, version: str, phase: str, cause: BaseException) -> None:
        super().__init__(f"error during {phase} of version {version}: {cause}")
        self.version = version
        self.phase = phase
        self.cause = cause
