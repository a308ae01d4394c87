"""Unit tests for pipeline notifications."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from storefront_ci.core.notifier import NotificationPhase, Notifier


class TestNotifier:
    """Tests for the notifier."""

    @pytest.mark.asyncio
    async def test_history_and_summary(self):
        written = []
        notifier = Notifier(webhook_url="", summary_writer=written.append)

        await notifier.rolling_back("9f2c1e0", "4b1d7aa", "acceptance failed")
        await notifier.rolled_back("4b1d7aa", url="https://shop.example.com")

        assert [u.phase for u in notifier.history] == [
            NotificationPhase.ROLLING_BACK,
            NotificationPhase.ROLLED_BACK,
        ]
        assert len(written) == 2
        assert "### Rolled Back" in written[1]
        assert "https://shop.example.com" in written[1]

    @pytest.mark.asyncio
    async def test_callbacks_receive_updates(self):
        received = []

        async def callback(update):
            received.append(update.phase)

        notifier = Notifier(webhook_url="")
        notifier.add_callback(callback)

        await notifier.rollback_failed("4b1d7aa", "deploy exited with 1")

        assert received == [NotificationPhase.ROLLBACK_FAILED]

    @pytest.mark.asyncio
    async def test_callback_error_does_not_propagate(self):
        async def broken(update):
            raise RuntimeError("callback down")

        notifier = Notifier(webhook_url="")
        notifier.add_callback(broken)

        update = await notifier.rolled_back("4b1d7aa")

        assert update.phase == NotificationPhase.ROLLED_BACK

    @pytest.mark.asyncio
    async def test_webhook_posts_json(self):
        notifier = Notifier(webhook_url="https://hooks.example.com/release")

        with patch("storefront_ci.core.notifier.httpx.AsyncClient") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.post = AsyncMock(return_value=MagicMock(status_code=200))
            mock_client_cls.return_value.__aenter__.return_value = mock_client

            await notifier.rollback_failed("4b1d7aa", "deploy exited with 1")

        mock_client.post.assert_awaited_once()
        args, kwargs = mock_client.post.call_args
        assert args[0] == "https://hooks.example.com/release"
        assert kwargs["json"]["phase"] == "rollback_failed"
        assert kwargs["json"]["error"] == "deploy exited with 1"

    @pytest.mark.asyncio
    async def test_webhook_failure_is_not_fatal(self):
        notifier = Notifier(webhook_url="https://hooks.example.com/release")

        with patch("storefront_ci.core.notifier.httpx.AsyncClient") as mock_client_cls:
            mock_client = MagicMock()
            mock_client.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
            mock_client_cls.return_value.__aenter__.return_value = mock_client

            update = await notifier.rolled_back("4b1d7aa")

        assert update.phase == NotificationPhase.ROLLED_BACK
        assert len(notifier.history) == 1
