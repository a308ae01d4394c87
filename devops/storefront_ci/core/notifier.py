"""
Pipeline Notifier - status updates for deployments and rollbacks.

Provides:
- Status callbacks
- Webhook notifications
- CI step summary entries
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Callable, Awaitable

import httpx

from .logger import get_logger
from ..config import get_config


class NotificationPhase(Enum):
    """Phases a notification can report."""
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"


@dataclass
class StatusUpdate:
    """A status update event."""
    phase: NotificationPhase
    timestamp: datetime
    message: str = ""
    revision: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "phase": self.phase.value,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "revision": self.revision,
            "details": self.details,
            "error": self.error,
        }

    def to_markdown(self) -> str:
        lines = [f"### {self.phase.value.replace('_', ' ').title()}", "", self.message]
        if self.revision:
            lines.append(f"- Revision: `{self.revision}`")
        for key, value in self.details.items():
            lines.append(f"- {key}: {value}")
        if self.error:
            lines.append(f"- Error: {self.error}")
        return "\n".join(lines) + "\n"


StatusCallback = Callable[[StatusUpdate], Awaitable[None]]


class Notifier:
    """
    Sends pipeline status updates to callbacks and an optional webhook.

    Usage:
        notifier = Notifier(webhook_url="https://hooks.example.com/...")
        await notifier.rolled_back("abc1234", url="https://shop.example.com")
    """

    def __init__(
        self,
        webhook_url: str = None,
        summary_writer: Callable[[str], None] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else get_config().rollback.webhook_url
        self.summary_writer = summary_writer
        self.logger = get_logger("Notifier")

        self._callbacks: List[StatusCallback] = []
        self._history: List[StatusUpdate] = []

    @property
    def history(self) -> List[StatusUpdate]:
        return self._history.copy()

    def add_callback(self, callback: StatusCallback) -> None:
        self._callbacks.append(callback)

    async def update(
        self,
        phase: NotificationPhase,
        message: str = "",
        revision: str = None,
        details: Dict[str, Any] = None,
        error: str = None,
    ) -> StatusUpdate:
        """Record and deliver a status update."""
        update = StatusUpdate(
            phase=phase,
            timestamp=datetime.now(),
            message=message,
            revision=revision,
            details=details or {},
            error=error,
        )
        self._history.append(update)

        log_msg = f"[{phase.value}] {message}"
        if error:
            self.logger.error(log_msg, revision=revision)
        else:
            self.logger.info(log_msg, revision=revision)

        for callback in self._callbacks:
            try:
                await callback(update)
            except Exception as e:
                self.logger.warning(f"Callback error: {e}")

        if self.summary_writer:
            self.summary_writer(update.to_markdown())

        if self.webhook_url:
            await self._send_webhook(update)

        return update

    async def _send_webhook(self, update: StatusUpdate) -> None:
        """Delivery failures are logged; they never fail the pipeline."""
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                response = await client.post(
                    self.webhook_url,
                    json=update.to_dict(),
                    headers={"Content-Type": "application/json"},
                )

            if response.status_code >= 400:
                self.logger.warning(f"Webhook failed: {response.status_code}")
        except httpx.HTTPError as e:
            self.logger.warning(f"Webhook error: {e}")

    async def rolling_back(self, failed_revision: str, target_revision: str, reason: str) -> StatusUpdate:
        return await self.update(
            NotificationPhase.ROLLING_BACK,
            f"Rolling back production: {reason}",
            revision=target_revision,
            details={"failed_revision": failed_revision},
        )

    async def rolled_back(self, revision: str, url: str = None) -> StatusUpdate:
        return await self.update(
            NotificationPhase.ROLLED_BACK,
            "Production rolled back",
            revision=revision,
            details={"url": url} if url else {},
        )

    async def rollback_failed(self, revision: Optional[str], error: str) -> StatusUpdate:
        return await self.update(
            NotificationPhase.ROLLBACK_FAILED,
            "Rollback failed - manual intervention required",
            revision=revision,
            error=error,
        )
