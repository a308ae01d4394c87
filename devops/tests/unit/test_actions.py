"""Unit tests for the GitHub Actions runtime integration."""

import json

from storefront_ci.integrations.actions import ActionsContext, TriggerEvent
from storefront_ci.models.run import TriggerKind


HEAD_SHA = "9f2c1e0a4b7d6c5e3f2a1b0c9d8e7f6a5b4c3d2e"
BASE_SHA = "4b1d7aa0c9e8f7a6b5c4d3e2f1a0b9c8d7e6f5a4"


def _pull_request_payload(head_repo="acme/storefront"):
    return {
        "action": "synchronize",
        "number": 42,
        "repository": {"full_name": "acme/storefront"},
        "pull_request": {
            "number": 42,
            "head": {
                "sha": HEAD_SHA,
                "repo": {"full_name": head_repo} if head_repo else None,
            },
        },
    }


class TestTriggerEvent:
    """Tests for event parsing."""

    def test_pull_request(self):
        event = TriggerEvent.from_payload("pull_request", _pull_request_payload())

        assert event.kind == TriggerKind.PULL_REQUEST
        assert event.pull_request_number == 42
        assert event.revision.sha == HEAD_SHA
        assert event.is_fork is False

    def test_pull_request_from_fork(self):
        event = TriggerEvent.from_payload("pull_request", _pull_request_payload("mallory/storefront"))

        assert event.is_fork is True

    def test_pull_request_with_deleted_head_repo_counts_as_fork(self):
        event = TriggerEvent.from_payload("pull_request", _pull_request_payload(head_repo=None))

        assert event.is_fork is True

    def test_merge_group_carries_parent(self):
        payload = {
            "action": "checks_requested",
            "repository": {"full_name": "acme/storefront"},
            "merge_group": {"head_sha": HEAD_SHA, "base_sha": BASE_SHA},
        }

        event = TriggerEvent.from_payload("merge_group", payload)

        assert event.kind == TriggerKind.MERGE_GROUP
        assert event.revision.sha == HEAD_SHA
        assert event.revision.parent_sha == BASE_SHA
        assert event.is_fork is False

    def test_workflow_run(self):
        payload = {
            "action": "completed",
            "workflow_run": {"name": "Deploy to Production", "conclusion": "failure", "head_sha": HEAD_SHA},
        }

        event = TriggerEvent.from_payload("workflow_run", payload)

        assert event.kind == TriggerKind.WORKFLOW_RUN
        assert event.workflow_name == "Deploy to Production"
        assert event.conclusion == "failure"
        assert event.revision.sha == HEAD_SHA

    def test_workflow_dispatch_inputs(self):
        event = TriggerEvent.from_payload(
            "workflow_dispatch",
            {"inputs": {"revision": BASE_SHA, "reason": "bad release"}},
            sha=HEAD_SHA,
        )

        assert event.kind == TriggerKind.WORKFLOW_DISPATCH
        assert event.inputs["revision"] == BASE_SHA
        # The dispatching commit is not the revision under test
        assert event.revision is None

    def test_unknown_event_falls_back_to_manual(self):
        event = TriggerEvent.from_payload("schedule", {}, sha=HEAD_SHA)

        assert event.kind == TriggerKind.MANUAL
        assert event.revision.sha == HEAD_SHA

    def test_from_actions_env(self, tmp_path):
        event_path = tmp_path / "event.json"
        event_path.write_text(json.dumps(_pull_request_payload()))

        event = TriggerEvent.from_actions_env({
            "GITHUB_EVENT_NAME": "pull_request",
            "GITHUB_EVENT_PATH": str(event_path),
            "GITHUB_SHA": "0000000",
        })

        assert event.pull_request_number == 42
        assert event.revision.sha == HEAD_SHA

    def test_from_actions_env_without_payload(self):
        event = TriggerEvent.from_actions_env({"GITHUB_EVENT_NAME": "push", "GITHUB_SHA": HEAD_SHA})

        assert event.kind == TriggerKind.PUSH
        assert event.revision.sha == HEAD_SHA


class TestActionsContext:
    """Tests for step outputs and summaries."""

    def test_set_output(self, tmp_path):
        output = tmp_path / "output"
        context = ActionsContext({"GITHUB_OUTPUT": str(output)})

        context.set_output("url", "https://shop.example.com")
        context.set_output("status", "pass")

        assert output.read_text() == "url=https://shop.example.com\nstatus=pass\n"

    def test_set_output_multiline(self, tmp_path):
        output = tmp_path / "output"
        context = ActionsContext({"GITHUB_OUTPUT": str(output)})

        context.set_output("errors", "first\nsecond")

        lines = output.read_text().splitlines()
        assert lines[0].startswith("errors<<")
        delimiter = lines[0].split("<<", 1)[1]
        assert lines[1:] == ["first", "second", delimiter]

    def test_inactive_outside_actions(self):
        context = ActionsContext({})

        assert context.active is False
        context.set_output("url", "https://shop.example.com")
        context.write_summary("## nothing")

    def test_write_summary(self, tmp_path):
        summary = tmp_path / "summary.md"
        context = ActionsContext({"GITHUB_STEP_SUMMARY": str(summary)})

        context.write_summary("## Preview")
        context.write_summary("ready\n")

        assert summary.read_text() == "## Preview\nready\n"
