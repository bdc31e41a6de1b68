from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)

COMPLETED_PREFIX = "completed/"
UNKNOWN_STATUS = ""


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"

    def persisted(self) -> str:
        return f"{COMPLETED_PREFIX}{self.value}"


@dataclass(frozen=True)
class ContextSnapshot:
    workflow_name: str
    run_id: str
    ref: str
    head_branch: str
    event_name: str
    actor_name: str
    server_url: str
    repo_owner: str
    repo_name: str

    @property
    def repository(self) -> str:
        return self.repo_name

    @property
    def run_url(self) -> str:
        return (
            f"{self.server_url}/{self.repo_owner}/{self.repo_name}"
            f"/actions/runs/{self.run_id}"
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ContextSnapshot":
        env = os.environ if environ is None else environ

        owner, _, name = env.get("GITHUB_REPOSITORY", "").partition("/")
        ref = env.get("GITHUB_REF", "")
        event_name = env.get("GITHUB_EVENT_NAME", "")
        payload = _load_event_payload(env.get("GITHUB_EVENT_PATH"))

        return cls(
            workflow_name=env.get("GITHUB_WORKFLOW", ""),
            run_id=env.get("GITHUB_RUN_ID", ""),
            ref=ref,
            head_branch=derive_head_branch(ref, payload),
            event_name=event_name,
            actor_name=env.get("GITHUB_ACTOR", ""),
            server_url=env.get("GITHUB_SERVER_URL", "https://github.com").rstrip("/"),
            repo_owner=owner,
            repo_name=name,
        )


def derive_head_branch(ref: str, payload: Mapping | None = None) -> str:
    """Head branch of a pull request, otherwise the last segment of the ref."""
    pull_request = (payload or {}).get("pull_request")
    if pull_request:
        head_ref = (pull_request.get("head") or {}).get("ref")
        if head_ref:
            return head_ref
    return ref.split("/")[-1]


def _load_event_payload(path: str | None) -> dict:
    if not path:
        return {}
    event_path = Path(path)
    if not event_path.is_file():
        return {}
    try:
        return json.loads(event_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.warning("Could not parse event payload %s: %s", event_path, exc)
        return {}
