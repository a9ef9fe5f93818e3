"""
Error taxonomy for Creation Studio.

Payment denials are not errors; they are returned as Decision values
by the access gate. Everything here is raised.
"""


class StudioError(Exception):
    """Base class for all library errors."""


class Unauthorized(StudioError):
    """Raised when an operation needs an owner and none is resolved."""


class NoSession(Unauthorized):
    """Raised when an upgrade or payment arrives without a session."""


class TransformFailure(StudioError):
    """Raised when the transform service errors or returns unusable content."""


class ConcurrentOperationRejected(StudioError):
    """Raised when a mutating call arrives while another is in flight."""

    def __init__(self, message: str = "An operation is already in progress"):
        super().__init__(message)


class NoActiveArtifact(StudioError):
    """Raised when an edit is requested with no active artifact."""


class ArtifactNotFound(StudioError, LookupError):
    """Raised when an artifact id is not present in the history list."""

    def __init__(self, artifact_id: str):
        super().__init__(f"Artifact not found in history: {artifact_id}")
        self.artifact_id = artifact_id
