from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .config import ConfigurationError, InputProvider, Settings, load_environment
from .notifications.slack import SlackWebhookClient
from .pipeline.status_report import build_status_store, run_status_notification
from .runs.models import ContextSnapshot

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Notify a Slack webhook when a workflow's outcome changes."
    )
    parser.add_argument(
        "--current-status",
        help="Outcome of this run: success, failure or skipped.",
    )
    parser.add_argument(
        "--slack-webhook",
        help="Slack incoming webhook URL (https).",
    )
    parser.add_argument(
        "--notify-type",
        help="standard, release or failure-and-recovery.",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        help="Directory backing the run status cache.",
    )
    return parser.parse_args(argv)


def report_failure(message: str) -> None:
    logger.error("%s", message)
    if os.getenv("GITHUB_ACTIONS") == "true":
        print(f"::error::{message}")


def run(args: argparse.Namespace) -> int:
    inputs = InputProvider(
        overrides={
            "current-status": args.current_status,
            "slack-webhook": args.slack_webhook,
            "notify-type": args.notify_type,
        }
    )
    try:
        settings = Settings.from_inputs(inputs)
    except ConfigurationError as exc:
        report_failure(str(exc))
        return 1

    if args.cache_dir is not None:
        settings = replace(settings, cache_dir=args.cache_dir.expanduser().resolve())

    context = ContextSnapshot.from_env()
    store = build_status_store(settings, context)
    client = SlackWebhookClient(settings.slack_webhook, timeout=settings.timeout)

    result = run_status_notification(settings, context, store, client)
    logger.info(
        "Finished %s run of %s on %s (notified: %s).",
        result.current_status.value,
        context.workflow_name,
        context.head_branch,
        result.notified,
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    load_environment()
    args = parse_args(argv)

    try:
        return run(args)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Status notification failed")
        report_failure(str(exc) or exc.__class__.__name__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
