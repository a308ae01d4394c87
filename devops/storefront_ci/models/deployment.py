"""
Deployment models for the release pipeline.
"""

from enum import Enum
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime

from .revision import Revision


class DeploymentEnvironment(Enum):
    """Where a build is published."""
    PREVIEW = "preview"
    PRODUCTION = "production"


class URLSource(Enum):
    """Where the reported deployment URL came from."""
    CONFIGURED = "configured"
    DEPLOY_OUTPUT = "deploy_output"
    NONE = "none"


@dataclass
class DeploymentResult:
    """Result of a deployment operation."""
    environment: DeploymentEnvironment
    success: bool = False
    url: Optional[str] = None
    url_source: URLSource = URLSource.NONE
    revision: Optional[Revision] = None

    # Timing
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    # Logs and errors
    logs: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def finish(self) -> "DeploymentResult":
        self.finished_at = datetime.now()
        self.duration_seconds = (self.finished_at - self.started_at).total_seconds()
        return self

    @property
    def confirmed(self) -> bool:
        """A deployment counts as live only when it succeeded with a URL."""
        return self.success and bool(self.url)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "environment": self.environment.value,
            "success": self.success,
            "url": self.url,
            "url_source": self.url_source.value,
            "revision": self.revision.to_dict() if self.revision else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }
