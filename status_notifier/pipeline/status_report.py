from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from ..cache.history import GithubHistoryTier, Runner
from ..cache.storage import CacheTier, FileBlobCache, StatusStore, primary_key, restore_prefix
from ..config import Settings
from ..notifications.formatter import compose_message, prepare_slack_notification
from ..notifications.slack import SlackWebhookClient
from ..runs.models import ContextSnapshot, RunStatus
from .decision import MessageKind, TransitionDecision, decide_transition

logger = logging.getLogger(__name__)

NOTIFICATION_LABELS = {
    MessageKind.RECOVERED: "Success notification",
    MessageKind.NEWLY_FAILING: "Failure notification",
    MessageKind.RELEASED: "Release notification",
    MessageKind.RELEASE_FAILED: "Release notification",
}


@dataclass(slots=True)
class PipelineResult:
    current_status: RunStatus
    last_status: str
    decision: TransitionDecision
    cache_written: bool
    notified: bool


def build_status_store(
    settings: Settings,
    context: ContextSnapshot,
    runner: Runner | None = None,
) -> StatusStore:
    cache = FileBlobCache(settings.cache_dir, max_age=timedelta(days=settings.cache_max_age_days))
    key = primary_key(context.run_id)
    tiers = [
        CacheTier(cache, settings.blob_path, key, restore_prefix(context.run_id)),
        GithubHistoryTier(context, github_token=settings.github_token, runner=runner),
    ]
    return StatusStore(tiers, cache, key, blob_path=settings.blob_path)


def run_status_notification(
    settings: Settings,
    context: ContextSnapshot,
    store: StatusStore,
    client: SlackWebhookClient,
) -> PipelineResult:
    current_status = settings.current_status
    last_status = store.resolve_last_status()

    logger.info("Last run status: %s", last_status)
    logger.info("Current run status: %s", current_status.value)

    decision = decide_transition(last_status, current_status, settings.notify_mode)

    cache_written = False
    if current_status is RunStatus.SKIPPED:
        logger.info("Skipped run, keeping last known status untouched.")
    else:
        store.write_status_to_cache(current_status)
        cache_written = True

    if not decision.should_notify:
        logger.info("No notification needed")
        return PipelineResult(current_status, last_status, decision, cache_written, notified=False)

    logger.info(NOTIFICATION_LABELS[decision.kind])
    message = compose_message(decision, context)
    body = prepare_slack_notification(
        message,
        current_status,
        context,
        channel=settings.slack_channel,
        scheduled_author=settings.scheduled_author,
    )
    client.send(body)

    return PipelineResult(current_status, last_status, decision, cache_written, notified=True)
