from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from .cache.storage import BLOB_PATH
from .notifications.formatter import DEFAULT_SCHEDULED_AUTHOR
from .pipeline.decision import NotifyMode
from .runs.models import RunStatus
from .validation.inputs import CURRENT_STATUS_ERROR, parse_current_status, validate_inputs

TRUE_VALUES = {"1", "true", "yes"}
FALSE_VALUES = {"0", "false", "no"}


class ConfigurationError(RuntimeError):
    pass


def load_environment() -> None:
    """Load environment variables from a .env file if present."""
    env_file = os.getenv("ENV_FILE", ".env")
    env_path = Path(env_file)
    if env_path.is_file():
        load_dotenv(env_path)
    else:
        default_path = Path(".env")
        if default_path.is_file():
            load_dotenv(default_path)


class InputProvider:
    """Reads action inputs the way GitHub Actions exposes them (``INPUT_<NAME>``)."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, str | None] | None = None,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._overrides = {
            name: value for name, value in (overrides or {}).items() if value is not None
        }

    @staticmethod
    def env_name(name: str) -> str:
        return f"INPUT_{name.replace(' ', '_').upper()}"

    def get(self, name: str, required: bool = False) -> str:
        if name in self._overrides:
            value = self._overrides[name]
        else:
            value = self._environ.get(self.env_name(name), "")
        value = value.strip()
        if required and not value:
            raise ConfigurationError(f"Input required and not supplied: {name}")
        return value

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = self.get(name).lower()
        if not value:
            return default
        if value in TRUE_VALUES:
            return True
        if value in FALSE_VALUES:
            return False
        raise ConfigurationError(f"Input {name} is not a boolean: {value!r}")


def _resolve_status_input(inputs: InputProvider) -> str:
    current = inputs.get("current-status")
    if current:
        return current

    legacy = inputs.get("success").lower()
    if legacy == "true":
        return RunStatus.SUCCESS.value
    if legacy == "false":
        return RunStatus.FAILURE.value
    raise ConfigurationError(CURRENT_STATUS_ERROR)


def _resolve_notify_mode(inputs: InputProvider) -> NotifyMode:
    if inputs.get_bool("is-release"):
        return NotifyMode.RELEASE

    raw = inputs.get("notify-type").lower().replace("_", "-")
    if not raw:
        return NotifyMode.STANDARD
    try:
        return NotifyMode(raw)
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in NotifyMode)
        raise ConfigurationError(
            f"Wrong notify type {raw!r}, expected one of: {allowed}"
        ) from exc


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    current_status: RunStatus
    slack_webhook: str
    cache_dir: Path
    notify_mode: NotifyMode = NotifyMode.STANDARD
    github_token: str = ""
    slack_channel: str | None = None
    scheduled_author: str = DEFAULT_SCHEDULED_AUTHOR
    blob_path: Path = BLOB_PATH
    timeout: int = 20
    cache_max_age_days: int = 7

    @classmethod
    def from_inputs(
        cls,
        inputs: InputProvider,
        environ: Mapping[str, str] | None = None,
    ) -> "Settings":
        env = os.environ if environ is None else environ

        current_status = _resolve_status_input(inputs)
        slack_webhook = inputs.get("slack-webhook")

        result = validate_inputs(current_status, slack_webhook)
        if not result.is_valid:
            raise ConfigurationError("; ".join(result.errors))

        cache_dir = env.get("STATUS_CACHE_DIR") or "~/.cache/status-notifier"
        timeout = _int_setting(env, "SLACK_TIMEOUT", 20)
        cache_max_age_days = _int_setting(env, "STATUS_CACHE_MAX_AGE_DAYS", 7)

        return cls(
            current_status=parse_current_status(current_status),
            slack_webhook=slack_webhook,
            cache_dir=Path(cache_dir).expanduser().resolve(),
            notify_mode=_resolve_notify_mode(inputs),
            github_token=inputs.get("github-token"),
            slack_channel=inputs.get("slack-channel") or None,
            scheduled_author=inputs.get("scheduled-author") or DEFAULT_SCHEDULED_AUTHOR,
            timeout=timeout,
            cache_max_age_days=cache_max_age_days,
        )
