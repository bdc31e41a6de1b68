from __future__ import annotations

import json
import logging
import os
import subprocess
from typing import Callable, Sequence

from ..runs.models import UNKNOWN_STATUS, ContextSnapshot
from .storage import MISS, Hit, TierResult

logger = logging.getLogger(__name__)

EXCLUDED_STATUSES = {"in_progress"}
EXCLUDED_CONCLUSIONS = {"cancelled"}
DEFAULT_LIMIT = 20

Runner = Callable[..., subprocess.CompletedProcess]


def build_lookup_command(context: ContextSnapshot, limit: int = DEFAULT_LIMIT) -> list[str]:
    return [
        "gh",
        "run",
        "list",
        "--workflow",
        context.workflow_name,
        "--branch",
        context.head_branch,
        "--json",
        "status,conclusion",
        "--limit",
        str(limit),
    ]


def parse_run_list(output: str) -> str:
    """Pick the most recent finished run from ``gh run list --json`` output.

    Returns ``<status>/<conclusion>`` (e.g. ``completed/failure``) or an empty
    string when no earlier run qualifies.
    """
    if not output.strip():
        return UNKNOWN_STATUS

    runs = json.loads(output)
    if not isinstance(runs, list):
        raise ValueError("Expected a JSON list of workflow runs.")

    for run in runs:
        if not isinstance(run, dict):
            continue
        status = run.get("status") or ""
        conclusion = run.get("conclusion") or ""
        if not isinstance(status, str) or not isinstance(conclusion, str):
            raise ValueError(f"Unexpected run entry: {run!r}")
        status, conclusion = status.strip(), conclusion.strip()
        if status in EXCLUDED_STATUSES or conclusion in EXCLUDED_CONCLUSIONS:
            continue
        if status != "completed" or not conclusion:
            continue
        return f"{status}/{conclusion}"
    return UNKNOWN_STATUS


class GithubHistoryTier:
    """Falls back to the workflow's run history via the ``gh`` CLI."""

    name = "history"

    def __init__(
        self,
        context: ContextSnapshot,
        github_token: str = "",
        runner: Runner | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.context = context
        self.github_token = github_token
        self.runner = runner or subprocess.run
        self.limit = limit

    def _child_env(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.github_token:
            env["GITHUB_TOKEN"] = self.github_token
            env["GH_TOKEN"] = self.github_token
        return env

    def _run(self, command: Sequence[str]) -> str:
        completed = self.runner(
            list(command),
            capture_output=True,
            text=True,
            check=True,
            env=self._child_env(),
        )
        return completed.stdout or ""

    def resolve(self) -> TierResult:
        command = build_lookup_command(self.context, self.limit)
        try:
            status = parse_run_list(self._run(command))
        except subprocess.CalledProcessError as exc:
            logger.warning(
                "Run history lookup failed with exit code %s: %s",
                exc.returncode,
                (exc.stderr or "").strip(),
            )
            return MISS
        except (OSError, ValueError) as exc:
            logger.warning("Run history lookup unavailable: %s", exc)
            return MISS

        logger.info("GH Found status: %s", status)
        if not status:
            return MISS
        return Hit(status)
