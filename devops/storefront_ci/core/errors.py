"""Exception types raised by pipeline stages."""

from typing import Optional


class PipelineError(Exception):
    """Base class for pipeline failures."""
    pass


class MissingURLError(PipelineError):
    """Raised when a URL required to continue could not be obtained."""
    pass


class RollbackError(PipelineError):
    """Raised when a rollback cannot be carried out."""

    def __init__(self, message: str, revision: Optional[str] = None):
        self.revision = revision
        super().__init__(message)
