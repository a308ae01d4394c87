"""
GitHub Actions runtime integration.

Provides:
- Parsing of the triggering event (GITHUB_EVENT_NAME / GITHUB_EVENT_PATH)
- Step outputs (GITHUB_OUTPUT) and job summaries (GITHUB_STEP_SUMMARY)
"""

import json
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, Mapping

from ..core.logger import get_logger
from ..models.revision import Revision
from ..models.run import TriggerKind


logger = get_logger("Actions")

EVENT_KINDS = {
    "pull_request": TriggerKind.PULL_REQUEST,
    "pull_request_target": TriggerKind.PULL_REQUEST,
    "merge_group": TriggerKind.MERGE_GROUP,
    "workflow_run": TriggerKind.WORKFLOW_RUN,
    "workflow_dispatch": TriggerKind.WORKFLOW_DISPATCH,
    "push": TriggerKind.PUSH,
}


@dataclass
class TriggerEvent:
    """A repository event, reduced to what the pipeline routes on."""
    kind: TriggerKind
    action: Optional[str] = None
    repository: Optional[str] = None
    revision: Optional[Revision] = None

    # Pull requests
    pull_request_number: Optional[int] = None
    head_repository: Optional[str] = None

    # Upstream workflow runs
    workflow_name: Optional[str] = None
    conclusion: Optional[str] = None

    # Manual invocation
    inputs: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_fork(self) -> bool:
        """
        True when a pull request's head lives outside this repository.
        A deleted head repository counts as external.
        """
        if self.kind != TriggerKind.PULL_REQUEST:
            return False
        if not self.head_repository or not self.repository:
            return True
        return self.head_repository.lower() != self.repository.lower()

    @classmethod
    def from_payload(
        cls,
        event_name: str,
        payload: Mapping[str, Any],
        sha: str = None,
    ) -> "TriggerEvent":
        kind = EVENT_KINDS.get(event_name, TriggerKind.MANUAL)
        event = cls(
            kind=kind,
            action=payload.get("action"),
            repository=(payload.get("repository") or {}).get("full_name"),
        )

        if kind == TriggerKind.PULL_REQUEST:
            pr = payload.get("pull_request") or {}
            head = pr.get("head") or {}
            event.pull_request_number = pr.get("number") or payload.get("number")
            event.head_repository = (head.get("repo") or {}).get("full_name")
            if head.get("sha"):
                event.revision = Revision(sha=head["sha"])

        elif kind == TriggerKind.MERGE_GROUP:
            group = payload.get("merge_group") or {}
            if group.get("head_sha"):
                event.revision = Revision(sha=group["head_sha"], parent_sha=group.get("base_sha"))

        elif kind == TriggerKind.WORKFLOW_RUN:
            run = payload.get("workflow_run") or {}
            event.workflow_name = run.get("name")
            event.conclusion = run.get("conclusion")
            if run.get("head_sha"):
                event.revision = Revision(sha=run["head_sha"])

        elif kind == TriggerKind.WORKFLOW_DISPATCH:
            event.inputs = dict(payload.get("inputs") or {})

        elif kind == TriggerKind.PUSH:
            if payload.get("after"):
                event.revision = Revision(sha=payload["after"], parent_sha=payload.get("before"))

        if event.revision is None and sha and kind != TriggerKind.WORKFLOW_DISPATCH:
            event.revision = Revision(sha=sha)

        return event

    @classmethod
    def from_actions_env(cls, environ: Mapping[str, str] = None) -> "TriggerEvent":
        """Build the event of the current workflow run."""
        environ = os.environ if environ is None else environ
        event_name = environ.get("GITHUB_EVENT_NAME", "")
        event_path = environ.get("GITHUB_EVENT_PATH")

        payload: Dict[str, Any] = {}
        if event_path and Path(event_path).exists():
            payload = json.loads(Path(event_path).read_text())
        else:
            logger.warning("No event payload found", event_name=event_name)

        return cls.from_payload(event_name, payload, sha=environ.get("GITHUB_SHA"))


class ActionsContext:
    """Writes step outputs and job summaries when running inside Actions."""

    def __init__(self, environ: Mapping[str, str] = None):
        environ = os.environ if environ is None else environ
        self.output_path = environ.get("GITHUB_OUTPUT")
        self.summary_path = environ.get("GITHUB_STEP_SUMMARY")

    @property
    def active(self) -> bool:
        return bool(self.output_path or self.summary_path)

    def set_output(self, name: str, value: Any) -> None:
        if not self.output_path:
            logger.debug("GITHUB_OUTPUT not set, output dropped", name=name)
            return
        text = "" if value is None else str(value)
        with open(self.output_path, "a", encoding="utf-8") as fh:
            if "\n" in text:
                delimiter = f"ghadelim_{uuid.uuid4().hex}"
                fh.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
            else:
                fh.write(f"{name}={text}\n")

    def write_summary(self, markdown: str) -> None:
        if not self.summary_path:
            return
        with open(self.summary_path, "a", encoding="utf-8") as fh:
            fh.write(markdown)
            if not markdown.endswith("\n"):
                fh.write("\n")
