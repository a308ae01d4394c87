"""Pipeline agents."""

from .base_agent import BaseAgent
from .integration_check import IntegrationCheckAgent, IntegrationCheckResult, CheckStep, StepStatus
from .preview_publisher import PreviewPublisher
from .production_publisher import ProductionPublisher
from .rollback_agent import RollbackAgent, RollbackResult
from .orchestrator import PipelineOrchestrator, render_summary

__all__ = [
    "BaseAgent",
    "IntegrationCheckAgent",
    "IntegrationCheckResult",
    "CheckStep",
    "StepStatus",
    "PreviewPublisher",
    "ProductionPublisher",
    "RollbackAgent",
    "RollbackResult",
    "PipelineOrchestrator",
    "render_summary",
]
