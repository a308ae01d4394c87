"""
Revision model - a source snapshot the pipeline checks, deploys or rolls back to.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class Revision:
    """Identifier of a source snapshot and, when known, its predecessor."""
    sha: str
    parent_sha: Optional[str] = None

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    def is_same(self, other: Optional[str]) -> bool:
        """True if ``other`` names this revision (full or abbreviated SHA)."""
        if not other:
            return False
        shorter, longer = sorted((self.sha, other), key=len)
        return longer.startswith(shorter)

    def to_dict(self) -> Dict[str, Any]:
        return {"sha": self.sha, "parent_sha": self.parent_sha}
