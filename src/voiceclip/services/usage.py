"""Per-identity daily character metering."""

from __future__ import annotations

import hashlib
import logging
import math
from datetime import datetime, timezone
from typing import Any, Tuple

from ..schemas.cloud import UsageSnapshot
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)


def current_day_key(now: datetime | None = None) -> str:
    """Return the UTC calendar day as ``YYYY-MM-DD``."""

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date().isoformat()


def user_identity(user_id: str) -> str:
    return f"user:{user_id}"


def anonymous_identity(client_ip: str | None, salt: str) -> str:
    """Fingerprint an anonymous caller without keeping the address itself."""

    digest = hashlib.sha256(f"{salt}:{client_ip or 'anon'}".encode("utf-8"))
    return f"anon:{digest.hexdigest()}"


def usage_key(identity: str, day: str) -> str:
    return f"usage:{identity}:{day}"


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0
    try:
        parsed = float(value)
    except ValueError:
        return 0
    if not math.isfinite(parsed) or parsed < 0:
        return 0
    return int(parsed)


class UsageLedger:
    """Increment-only counters keyed by ``(identity, day)``.

    ``check_quota`` followed by ``increment`` is not atomic: two requests
    from the same identity can both pass the check before either commits.
    The overshoot is bounded by the per-request text cap.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def get_usage(self, identity: str, day: str) -> int:
        return _as_count(await self._store.get(usage_key(identity, day)))

    async def check_quota(
        self, identity: str, day: str, additional_chars: int, limit: int
    ) -> Tuple[int, bool]:
        """Return the current count and whether ``additional_chars`` would exceed ``limit``."""

        used = await self.get_usage(identity, day)
        return used, used + additional_chars > limit

    async def would_exceed(
        self, identity: str, day: str, additional_chars: int, limit: int
    ) -> bool:
        _, exceeded = await self.check_quota(identity, day, additional_chars, limit)
        return exceeded

    async def increment(self, identity: str, day: str, additional_chars: int) -> int:
        if additional_chars < 0:
            raise ValueError("Usage counters cannot be decremented")

        def _add(current: Any | None) -> int:
            return _as_count(current) + additional_chars

        total = await self._store.update(usage_key(identity, day), _add)
        logger.debug("Usage for %s on %s is now %d", identity[:13], day, total)
        return total

    async def snapshot(self, identity: str, limit: int, day: str) -> UsageSnapshot:
        used = await self.get_usage(identity, day)
        return UsageSnapshot(day=day, used=used, limit=limit)


__all__ = [
    "UsageLedger",
    "anonymous_identity",
    "current_day_key",
    "usage_key",
    "user_identity",
]
