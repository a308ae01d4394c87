"""Test GitHub Client REST calls with a mocked HTTP client."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


MARKER = "<!-- storefront-ci:preview -->"


def _response(status_code, payload=None):
    return MagicMock(status_code=status_code, json=lambda: payload)


class TestGitHubClientComments:
    """Tests for pull request comments."""

    @pytest.mark.asyncio
    async def test_upsert_creates_comment_when_none_exists(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client

            mock_client.get = AsyncMock(return_value=_response(200, [
                {"id": 1, "body": "Looks good to me"},
            ]))
            mock_client.post = AsyncMock(return_value=_response(201, {
                "id": 99,
                "html_url": "https://github.com/acme/storefront/pull/42#issuecomment-99",
            }))

            result = await client.upsert_comment("acme", "storefront", 42, f"{MARKER}\nPreview", MARKER)

            assert result.success is True
            assert result.comment_id == 99
            mock_client.post.assert_awaited_once()
            assert mock_client.post.call_args.args[0] == "/repos/acme/storefront/issues/42/comments"
            mock_client.patch.assert_not_called()

    @pytest.mark.asyncio
    async def test_upsert_updates_marked_comment(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client

            mock_client.get = AsyncMock(return_value=_response(200, [
                {"id": 1, "body": "Looks good to me"},
                {"id": 7, "body": f"{MARKER}\nPreview: https://old.myshopify.dev"},
            ]))
            mock_client.patch = AsyncMock(return_value=_response(200, {
                "html_url": "https://github.com/acme/storefront/pull/42#issuecomment-7",
            }))

            result = await client.upsert_comment("acme", "storefront", 42, f"{MARKER}\nnew", MARKER)

            assert result.success is True
            assert result.comment_id == 7
            assert mock_client.patch.call_args.args[0] == "/repos/acme/storefront/issues/comments/7"
            assert mock_client.patch.call_args.kwargs["json"] == {"body": f"{MARKER}\nnew"}
            mock_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_comments_paginates(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")
        first_page = [{"id": i, "body": ""} for i in range(100)]
        second_page = [{"id": 100, "body": MARKER}]

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client
            mock_client.get = AsyncMock(side_effect=[_response(200, first_page), _response(200, second_page)])

            comments = await client.list_comments("acme", "storefront", 42)

            assert len(comments) == 101
            assert mock_client.get.await_count == 2
            assert mock_client.get.call_args.kwargs["params"]["page"] == 2

    @pytest.mark.asyncio
    async def test_upsert_does_not_create_when_listing_fails(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client
            mock_client.get = AsyncMock(return_value=_response(502, {"message": "Server Error"}))
            mock_client.post = AsyncMock()

            result = await client.upsert_comment("acme", "storefront", 42, f"{MARKER}\nPreview", MARKER)

            assert result.success is False
            assert "Server Error" in result.errors[0]
            mock_client.post.assert_not_called()
            mock_client.patch.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_comments_raises_on_later_page_error(self):
        from storefront_ci.integrations.github_client import GitHubAPIError, GitHubClient

        client = GitHubClient(token="ghp_test_token")
        first_page = [{"id": i, "body": ""} for i in range(100)]

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client
            mock_client.get = AsyncMock(side_effect=[
                _response(200, first_page),
                _response(403, {"message": "API rate limit exceeded"}),
            ])

            with pytest.raises(GitHubAPIError) as exc_info:
                await client.list_comments("acme", "storefront", 42)

            assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_create_comment_error(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client
            mock_client.post = AsyncMock(return_value=_response(403, {"message": "Resource not accessible by integration"}))

            result = await client.create_comment("acme", "storefront", 42, "body")

            assert result.success is False
            assert result.errors == ["Resource not accessible by integration"]

    @pytest.mark.asyncio
    async def test_network_error_reported(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client
            mock_client.get = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

            result = await client.upsert_comment("acme", "storefront", 42, "body", MARKER)

            assert result.success is False
            assert "connection refused" in result.errors[0]


class TestGitHubClientHeaders:
    def test_headers_include_token(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        assert client.headers["Authorization"] == "Bearer ghp_test_token"
        assert "Authorization" not in GitHubClient(token="").headers


class TestGitHubClientStatuses:
    """Tests for commit statuses."""

    @pytest.mark.asyncio
    async def test_create_commit_status(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client
            mock_client.post = AsyncMock(return_value=_response(201, {"url": "https://api.github.com/statuses/1"}))

            result = await client.create_commit_status(
                "acme", "storefront", "9f2c1e0a", "failure", "storefront-ci/rollback", "Rollback requested",
            )

            assert result.success is True
            assert mock_client.post.call_args.args[0] == "/repos/acme/storefront/statuses/9f2c1e0a"
            assert mock_client.post.call_args.kwargs["json"] == {
                "state": "failure",
                "context": "storefront-ci/rollback",
                "description": "Rollback requested",
            }

    @pytest.mark.asyncio
    async def test_get_commit_status_by_context(self):
        from storefront_ci.integrations.github_client import GitHubClient

        client = GitHubClient(token="ghp_test_token")

        with patch.object(client, '_get_rest_client') as mock_get_client:
            mock_client = AsyncMock()
            mock_get_client.return_value = mock_client
            mock_client.get = AsyncMock(return_value=_response(200, {"statuses": [
                {"context": "ci/lint", "state": "success"},
                {"context": "storefront-ci/rollback", "state": "failure"},
            ]}))

            status = await client.get_commit_status("acme", "storefront", "9f2c1e0a", "storefront-ci/rollback")
            missing = await client.get_commit_status("acme", "storefront", "9f2c1e0a", "other")

            assert status["state"] == "failure"
            assert missing is None
            assert mock_client.get.call_args.args[0] == "/repos/acme/storefront/commits/9f2c1e0a/status"
