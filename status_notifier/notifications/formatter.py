from __future__ import annotations

from typing import Any

from ..pipeline.decision import MessageKind, TransitionDecision
from ..runs.models import ContextSnapshot, RunStatus

ICON_EMOJI = ":bangbang:"
SCHEDULE_EVENT = "schedule"
DEFAULT_SCHEDULED_AUTHOR = "github-actions"

# Workflow name fragment -> (past tense, gerund)
RELEASE_ACTIONS = (
    ("deploy", ("deployed", "deploying")),
    ("release", ("released", "releasing")),
    ("publish", ("published", "publishing")),
)
DEFAULT_RELEASE_ACTION = ("deployed", "deploying")


def release_action(workflow_name: str) -> tuple[str, str]:
    lowered = workflow_name.casefold()
    for fragment, phrases in RELEASE_ACTIONS:
        if fragment in lowered:
            return phrases
    return DEFAULT_RELEASE_ACTION


def compose_message(decision: TransitionDecision, context: ContextSnapshot) -> str:
    workflow = context.workflow_name
    repository = context.repository

    if decision.kind is MessageKind.RECOVERED:
        return f"Previously failing {workflow} workflow in {repository} succeeded."
    if decision.kind is MessageKind.NEWLY_FAILING:
        return f"{workflow} workflow in {repository} failed."

    past, gerund = release_action(workflow)
    if decision.kind is MessageKind.RELEASED:
        return f"{repository} {past} successfully by {workflow} workflow."
    if decision.kind is MessageKind.RELEASE_FAILED:
        return f"{workflow} workflow in {repository}: error {gerund}."
    raise ValueError(f"No message for decision kind {decision.kind.value!r}")


def status_color(status: RunStatus) -> str:
    return "good" if status is RunStatus.SUCCESS else "danger"


def _field(title: str, value: str, short: bool = True) -> dict[str, Any]:
    return {"title": title, "value": value, "short": short}


def prepare_slack_notification(
    message: str,
    status: RunStatus,
    context: ContextSnapshot,
    channel: str | None = None,
    scheduled_author: str = DEFAULT_SCHEDULED_AUTHOR,
) -> dict[str, Any]:
    """Build the Slack attachment payload for a status notification.

    Field order is Repository, Branch, Action URL, Event, then the outcome
    line carrying ``message`` at full width.
    """
    if context.event_name == SCHEDULE_EVENT:
        author = scheduled_author
    else:
        author = context.actor_name
    author_link = f"{context.server_url}/{author}"

    body: dict[str, Any] = {"icon_emoji": ICON_EMOJI}
    if channel:
        body["channel"] = channel
    body["attachments"] = [
        {
            "color": status_color(status),
            "author_name": author,
            "author_link": author_link,
            "author_icon": f"{author_link}.png?size=32",
            "fields": [
                _field("Repository", context.repository),
                _field("Branch", context.head_branch),
                _field("Action URL", f"<{context.run_url}|{context.workflow_name}>"),
                _field("Event", context.event_name),
                _field(f"{context.workflow_name} workflow {status.value}", message, short=False),
            ],
        }
    ]
    return body
