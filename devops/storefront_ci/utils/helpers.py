"""Helper utilities."""

import uuid
from datetime import datetime


def generate_id(prefix: str = "", length: int = 8) -> str:
    """
    Generate a run identifier, e.g. ``prod-20260101-120000-1a2b3c4d``.

    Args:
        prefix: Optional prefix for the ID
        length: Length of the random portion
    """
    random_part = uuid.uuid4().hex[:length]
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")

    if prefix:
        return f"{prefix}-{stamp}-{random_part}"
    return f"{stamp}-{random_part}"


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"
