from __future__ import annotations

import logging
import os
import secrets
import shutil
import string
import tempfile
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Protocol, Sequence, Union

from ..runs.models import UNKNOWN_STATUS, RunStatus

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "last-run-status"
BLOB_PATH = Path("last-run-status")
SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 12
DEFAULT_MAX_AGE = timedelta(days=7)


def restore_prefix(run_id: str) -> str:
    # Trailing dash keeps run 12 from matching entries of run 123.
    return f"{CACHE_KEY_PREFIX}-{run_id}-"


def primary_key(run_id: str, suffix: str | None = None) -> str:
    if suffix is None:
        suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{restore_prefix(run_id)}{suffix}"


@dataclass(frozen=True)
class Hit:
    status: str


class Miss:
    def __repr__(self) -> str:
        return "MISS"


MISS = Miss()
TierResult = Union[Hit, Miss]


class StatusTier(Protocol):
    name: str

    def resolve(self) -> TierResult:
        ...


class FileBlobCache:
    """Directory-backed blob cache.

    Each entry lives in ``<root>/<key>/`` and holds a copy of the saved file.
    Entries are staged under a dot-prefixed directory and renamed into place,
    so a key never becomes visible before its blob is complete. Entries older
    than ``max_age`` are pruned after every save.
    """

    def __init__(self, root: Path, max_age: timedelta = DEFAULT_MAX_AGE) -> None:
        self.root = root
        self.max_age = max_age

    def _entry_dir(self, key: str) -> Path:
        if not key or "/" in key or key.startswith("."):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self.root / key

    def save(self, path: Path, key: str) -> None:
        entry = self._entry_dir(key)
        self.root.mkdir(parents=True, exist_ok=True)
        if entry.is_dir():
            staged = entry / f".{path.name}.tmp"
            shutil.copyfile(path, staged)
            os.replace(staged, entry / path.name)
        else:
            staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.root))
            shutil.copyfile(path, staging / path.name)
            os.replace(staging, entry)
        logger.debug("Saved %s to cache entry %s", path, key)
        self.prune(keep=key)

    def restore(self, path: Path, key: str, restore_keys: Iterable[str] = ()) -> str | None:
        """Copy the best matching entry's blob to ``path``.

        The exact key wins; otherwise the newest entry whose key starts with
        one of ``restore_keys``. Returns the matched key, or None. A leftover
        local blob is removed on a match, so a matched entry without a blob
        leaves ``path`` absent.
        """
        matched = self._match(key, restore_keys)
        if matched is None:
            return None

        path.unlink(missing_ok=True)
        source = self.root / matched / path.name
        if source.is_file():
            path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, path)
        return matched

    def prune(self, keep: str = "", now: float | None = None) -> int:
        if not self.root.is_dir():
            return 0
        cutoff = (time.time() if now is None else now) - self.max_age.total_seconds()

        removed = 0
        for entry in self.root.iterdir():
            if not entry.is_dir() or entry.name == keep:
                continue
            try:
                if entry.stat().st_mtime >= cutoff:
                    continue
                shutil.rmtree(entry)
            except FileNotFoundError:
                # Another job pruned it first.
                continue
            removed += 1

        if removed:
            logger.info("Pruned %d stale cache entries from %s", removed, self.root)
        return removed

    def _match(self, key: str, restore_keys: Iterable[str]) -> str | None:
        if not self.root.is_dir():
            return None
        if self._entry_dir(key).is_dir():
            return key

        for prefix in restore_keys:
            candidates = [
                entry
                for entry in self.root.iterdir()
                if entry.is_dir()
                and not entry.name.startswith(".")
                and entry.name.startswith(prefix)
            ]
            if candidates:
                newest = max(candidates, key=lambda entry: (entry.stat().st_mtime_ns, entry.name))
                return newest.name
        return None


class CacheTier:
    """Reads the status another job of the same run left in the blob cache."""

    name = "cache"

    def __init__(self, cache: FileBlobCache, blob_path: Path, key: str, restore_key: str) -> None:
        self.cache = cache
        self.blob_path = blob_path
        self.key = key
        self.restore_key = restore_key

    def resolve(self) -> TierResult:
        matched = self.cache.restore(self.blob_path, self.key, [self.restore_key])
        if not matched:
            return MISS
        try:
            status = self.blob_path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Cache entry %s matched but blob is unreadable: %s", matched, exc)
            return MISS
        logger.info("Cache Found status: %s", status)
        return Hit(status)


class StatusStore:
    def __init__(
        self,
        tiers: Sequence[StatusTier],
        cache: FileBlobCache,
        key: str,
        blob_path: Path = BLOB_PATH,
    ) -> None:
        self.tiers = list(tiers)
        self.cache = cache
        self.key = key
        self.blob_path = blob_path

    def resolve_last_status(self) -> str:
        for tier in self.tiers:
            result = tier.resolve()
            if isinstance(result, Hit):
                return result.status.strip()
            logger.debug("No status from %s tier", tier.name)
        return UNKNOWN_STATUS

    def write_status_to_cache(self, status: RunStatus) -> None:
        if status is RunStatus.SKIPPED:
            raise ValueError("Skipped runs must not overwrite the last known status.")
        self.blob_path.parent.mkdir(parents=True, exist_ok=True)
        self.blob_path.write_text(status.persisted(), encoding="utf-8")
        self.cache.save(self.blob_path, self.key)
