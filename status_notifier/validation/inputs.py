from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from ..runs.models import RunStatus

WEBHOOK_URL_ERROR = "Wrong Slack Webhook URL format"
CURRENT_STATUS_ERROR = "Wrong current status value"


@dataclass(slots=True)
class ValidationResult:
    is_valid: bool
    errors: list[str]


def is_valid_webhook_url(url: str) -> bool:
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme == "https" and bool(parsed.netloc)


def parse_current_status(value: str) -> RunStatus | None:
    try:
        return RunStatus(value.strip().lower())
    except ValueError:
        return None


def validate_inputs(current_status: str, webhook_url: str) -> ValidationResult:
    errors: list[str] = []

    if parse_current_status(current_status) is None:
        errors.append(CURRENT_STATUS_ERROR)
    if not is_valid_webhook_url(webhook_url):
        errors.append(WEBHOOK_URL_ERROR)

    return ValidationResult(is_valid=not errors, errors=errors)
