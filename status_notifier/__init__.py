from .pipeline.decision import MessageKind, NotifyMode, TransitionDecision, decide_transition
from .pipeline.status_report import run_status_notification

__all__ = [
    "MessageKind",
    "NotifyMode",
    "TransitionDecision",
    "decide_transition",
    "run_status_notification",
]
