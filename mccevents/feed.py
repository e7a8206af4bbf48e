"""
Live event feed for displays that refresh on their own (kiosk, watch mode).

A feed is in exactly one of three states:

    Loading()          nothing fetched yet
    Failed(message)    the latest fetch failed
    Loaded(items)      the latest fetch succeeded (items may be empty)

Fetches are independent: polling launches a new fetch on every tick
without waiting for earlier ones, and a result that arrives after a newer
one has already been applied is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Union

from mccevents.errors import MccEventsError
from mccevents.model import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class Loaded:
    items: Tuple[Event, ...] = field(default_factory=tuple)


FeedState = Union[Loading, Failed, Loaded]

Fetcher = Callable[[], Awaitable[list[Event]]]


def store_fetcher(query: Callable[[], list[Event]]) -> Fetcher:
    """
    Wrap a blocking store query as an async fetcher running in a worker thread.

        store_fetcher(lambda: todays_events(store, datetime.now(timezone.utc), tz))
    """

    async def fetch() -> list[Event]:
        return await asyncio.to_thread(query)

    return fetch


class EventFeed:
    def __init__(
        self,
        fetch: Fetcher,
        on_change: Optional[Callable[[FeedState], None]] = None,
    ) -> None:
        self._fetch = fetch
        self._on_change = on_change
        self._state: FeedState = Loading()
        self._issued = 0
        self._applied = 0
        self._poller: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def state(self) -> FeedState:
        return self._state

    def _apply(self, seq: int, state: FeedState) -> bool:
        if seq < self._applied:
            logger.debug("Dropping stale result of fetch #%d", seq)
            return False
        self._applied = seq
        self._state = state
        if self._on_change is not None:
            self._on_change(state)
        return True

    async def refresh(self) -> FeedState:
        """
        Run one fetch and apply its outcome. Returns the feed state afterwards.
        """
        self._issued += 1
        seq = self._issued
        try:
            items = await self._fetch()
        except asyncio.CancelledError:
            raise
        except MccEventsError as exc:
            logger.warning("Fetch #%d failed: %s", seq, exc)
            self._apply(seq, Failed(str(exc) or "Failed to load events"))
        except Exception as exc:
            logger.exception("Fetch #%d failed unexpectedly", seq)
            self._apply(seq, Failed(str(exc) or "Failed to load events"))
        else:
            self._apply(seq, Loaded(tuple(items)))
        return self._state

    def _spawn_refresh(self) -> asyncio.Task:
        task = asyncio.create_task(self.refresh())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _poll(self, interval: float) -> None:
        while True:
            self._spawn_refresh()
            await asyncio.sleep(interval)

    def start(self, interval: float) -> asyncio.Task:
        """
        Fetch now and then every `interval` seconds until stop() is awaited.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self._poller is not None and not self._poller.done():
            return self._poller
        self._poller = asyncio.create_task(self._poll(interval))
        return self._poller

    @property
    def running(self) -> bool:
        return self._poller is not None and not self._poller.done()

    async def stop(self) -> None:
        """Cancel the poller and any fetch still in flight."""
        tasks = list(self._inflight)
        if self._poller is not None:
            tasks.append(self._poller)
            self._poller = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
