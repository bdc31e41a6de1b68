"""Shared test fixtures for the status notifier tests."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest import mock

import pytest

from status_notifier.cache.history import GithubHistoryTier
from status_notifier.cache.storage import (
    CacheTier,
    FileBlobCache,
    StatusStore,
    primary_key,
    restore_prefix,
)
from status_notifier.config import Settings
from status_notifier.notifications.slack import SlackWebhookClient
from status_notifier.pipeline.decision import NotifyMode
from status_notifier.runs.models import ContextSnapshot, RunStatus

WEBHOOK_URL = "https://hooks.slack.com/services/test/test"


@pytest.fixture
def context() -> ContextSnapshot:
    return ContextSnapshot(
        workflow_name="Failure workflow (for test purpose only)",
        run_id="23456",
        ref="refs/heads/main",
        head_branch="main",
        event_name="pull_request",
        actor_name="workflowactor",
        server_url="https://github.com",
        repo_owner="reside-eng",
        repo_name="workflow-status-slack-notification",
    )


@pytest.fixture
def blob_path(tmp_path) -> Path:
    return tmp_path / "workspace" / "last-run-status"


@pytest.fixture
def cache(tmp_path) -> FileBlobCache:
    return FileBlobCache(tmp_path / "cache")


def make_settings(tmp_path: Path, blob_path: Path, **overrides) -> Settings:
    values = {
        "current_status": RunStatus.SUCCESS,
        "slack_webhook": WEBHOOK_URL,
        "cache_dir": tmp_path / "cache",
        "notify_mode": NotifyMode.STANDARD,
        "blob_path": blob_path,
    }
    values.update(overrides)
    return Settings(**values)


def gh_runner(stdout: str = "", returncode: int = 0) -> mock.Mock:
    """A stand-in for subprocess.run returning canned ``gh`` output."""

    def _run(command, **kwargs):
        if returncode:
            raise subprocess.CalledProcessError(returncode, command, output=stdout, stderr="boom")
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

    return mock.Mock(side_effect=_run)


def make_store(
    cache: FileBlobCache,
    blob_path: Path,
    context: ContextSnapshot,
    runner: mock.Mock | None = None,
) -> StatusStore:
    key = primary_key(context.run_id)
    tiers = [
        CacheTier(cache, blob_path, key, restore_prefix(context.run_id)),
        GithubHistoryTier(context, github_token="token", runner=runner or gh_runner()),
    ]
    return StatusStore(tiers, cache, key, blob_path=blob_path)


@pytest.fixture
def session() -> mock.Mock:
    session = mock.Mock()
    session.post.return_value = mock.Mock(status_code=200)
    return session


@pytest.fixture
def client(session) -> SlackWebhookClient:
    return SlackWebhookClient(WEBHOOK_URL, session=session)


@pytest.fixture
def settings_factory(tmp_path, blob_path):
    return lambda **overrides: make_settings(tmp_path, blob_path, **overrides)


@pytest.fixture
def runner_factory():
    return gh_runner


@pytest.fixture
def store_factory(cache, blob_path, context):
    return lambda runner=None: make_store(cache, blob_path, context, runner)
