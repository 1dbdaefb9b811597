"""Event repository - cached, enriched event collection.

The full collection is enriched once and then kept current by patching the
single record a mutation touched, instead of re-enriching everything after
each change. Entries older than ``EVENT_REPOSITORY_TTL_SECONDS`` are
reloaded on next read so writes from other processes show up.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

import anyio

from caseops.core.config import settings
from caseops.schemas.event import EnrichedEvent
from caseops.services.enrichment_service import enrich_events
from caseops.services.gateways import Gateways

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _date_desc_key(item: EnrichedEvent) -> tuple[bool, datetime]:
    date = item.record.date
    if date is None:
        return (False, _EPOCH)
    return (True, date if date.tzinfo else date.replace(tzinfo=timezone.utc))


class EventRepository:
    def __init__(
        self,
        gateways: Gateways,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._gateways = gateways
        self._ttl = settings.EVENT_REPOSITORY_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._items: list[EnrichedEvent] | None = None
        self._loaded_at = 0.0
        self._lock = anyio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._items is not None

    def _stale(self) -> bool:
        return self._items is None or (self._clock() - self._loaded_at) > self._ttl

    async def all(self) -> list[EnrichedEvent]:
        """Every event, enriched, date descending. Loads on first use or when stale."""
        if self._stale():
            async with self._lock:
                # a concurrent reader may have loaded while we waited
                if self._stale():
                    await self._load()
        return list(self._items or [])

    async def reload(self) -> None:
        """Unconditional reload."""
        async with self._lock:
            await self._load()

    async def _load(self) -> None:
        events = await self._gateways.cases.list_events()
        self._items = await enrich_events(events, self._gateways)
        self._loaded_at = self._clock()
        logger.debug("Event repository reloaded count=%d", len(self._items))

    def invalidate(self) -> None:
        """Drop the cache; the next read reloads."""
        self._items = None

    async def patch(self, event_id: str) -> EnrichedEvent | None:
        """
        Re-fetch and re-enrich one event and splice it into the cache.

        Returns the fresh record, or None if the event no longer exists
        (it is then discarded).
        """
        event = await self._gateways.cases.get_event(event_id)
        if event is None:
            self.discard(event_id)
            return None
        [fresh] = await enrich_events([event], self._gateways)
        if self._items is not None:
            items = [item for item in self._items if item.record.id != event_id]
            items.append(fresh)
            self._items = sorted(items, key=_date_desc_key, reverse=True)
        return fresh

    def discard(self, event_id: str) -> None:
        if self._items is not None:
            self._items = [item for item in self._items if item.record.id != event_id]
