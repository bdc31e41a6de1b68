from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..runs.models import UNKNOWN_STATUS, RunStatus


class NotifyMode(str, Enum):
    STANDARD = "standard"
    RELEASE = "release"
    FAILURE_AND_RECOVERY = "failure-and-recovery"


class MessageKind(str, Enum):
    RECOVERED = "recovered"
    NEWLY_FAILING = "newly_failing"
    RELEASED = "released"
    RELEASE_FAILED = "release_failed"
    NONE = "none"


@dataclass(frozen=True)
class TransitionDecision:
    should_notify: bool
    kind: MessageKind


SUPPRESS = TransitionDecision(should_notify=False, kind=MessageKind.NONE)

# An unknown last status counts as a success so a first-ever failure alerts.
_PASSING_LAST_STATUSES = {RunStatus.SUCCESS.persisted(), UNKNOWN_STATUS}


def decide_transition(
    last_status: str,
    current_status: RunStatus,
    mode: NotifyMode = NotifyMode.STANDARD,
) -> TransitionDecision:
    if current_status is RunStatus.SKIPPED:
        return SUPPRESS

    if mode is NotifyMode.RELEASE:
        if current_status is RunStatus.SUCCESS:
            return TransitionDecision(True, MessageKind.RELEASED)
        return TransitionDecision(True, MessageKind.RELEASE_FAILED)

    if current_status is RunStatus.SUCCESS:
        if last_status == RunStatus.FAILURE.persisted():
            return TransitionDecision(True, MessageKind.RECOVERED)
        return SUPPRESS

    if mode is NotifyMode.FAILURE_AND_RECOVERY or last_status in _PASSING_LAST_STATUSES:
        return TransitionDecision(True, MessageKind.NEWLY_FAILING)
    return SUPPRESS
