"""Data models for the storefront release pipeline."""

from .revision import Revision
from .deployment import DeploymentEnvironment, DeploymentResult, URLSource
from .run import (
    PipelineRun,
    PipelineStatus,
    Stage,
    StageOutcome,
    StageResult,
    TriggerKind,
)

__all__ = [
    "Revision",
    "DeploymentEnvironment",
    "DeploymentResult",
    "URLSource",
    "PipelineRun",
    "PipelineStatus",
    "Stage",
    "StageOutcome",
    "StageResult",
    "TriggerKind",
]
