"""Discover which periods already have a stored report.

The document store's own key listing is the only discovery source: a key
counts when it parses back into a period under the configured prefix. The
index is advisory (it feeds period selectors) and never fails; when
nothing can be discovered it is simply empty.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .periods import DEFAULT_KEY_PREFIX, parse_key, sort_periods_desc

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .periods import Period
    from .ports.document_store import DocumentStore

log = getLogger(__name__)


class ReportIndex:
    def __init__(self, store: DocumentStore, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._store = store
        self._key_prefix = key_prefix

    async def list_known_periods(self) -> list[Period]:
        """Return the periods with a stored document, most recent first."""

        try:
            keys = await self._store.list_keys()
        except Exception:
            log.exception("Could not list stored report keys")
            return []

        periods: list[Period] = []
        for key in keys:
            period = parse_key(key, prefix=self._key_prefix)
            if period is None:
                log.debug("Ignoring foreign key %s", key)
                continue
            periods.append(period)
        return sort_periods_desc(periods)


def default_period(known: Sequence[Period], current: Period) -> Period:
    """Pick the period a reader sees first.

    The current period wins when it has a report; otherwise the most recent
    known one; with nothing known, the current period again.
    """

    if current in known or not known:
        return current
    return max(known)


__all__ = ["ReportIndex", "default_period"]
